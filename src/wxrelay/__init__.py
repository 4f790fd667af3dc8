"""Weather Alert Relay - relay weather alerts, conditions and forecasts to a webhook."""

__version__ = "0.1.0"

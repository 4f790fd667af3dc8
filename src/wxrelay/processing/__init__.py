"""Alert normalization, weather classification, dedup and record formatting."""

from wxrelay.processing.classifier import classify
from wxrelay.processing.dedup import ConditionSnapshots, DedupLedger
from wxrelay.processing.formatters import build_condition_record, build_forecast_record
from wxrelay.processing.normalizer import create_test_alert, normalize, normalize_all

__all__ = [
    "ConditionSnapshots",
    "DedupLedger",
    "build_condition_record",
    "build_forecast_record",
    "classify",
    "create_test_alert",
    "normalize",
    "normalize_all",
]

"""Relay cycles and their orchestrator."""

from wxrelay.cycles.context import RelayContext
from wxrelay.cycles.orchestrator import RelayOrchestrator
from wxrelay.cycles.summary import CycleState, CycleSummary

__all__ = ["CycleState", "CycleSummary", "RelayContext", "RelayOrchestrator"]

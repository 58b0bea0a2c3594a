"""
Launcher module for the Copilot language server.

Provides the single-instance guard and the lifecycle instrumentation
wrapped around the assistant service.
"""

from src.launcher.guard import (
    GuardReport,
    GuardVerdict,
    ProcessInstanceGuard,
    ProcessLister,
    ProcessProbeFailure,
    ProcessRecord,
    PsutilProcessLister,
)
from src.launcher.instrument import EventKind, InstrumentationEvent, InstrumentedService, instrument
from src.launcher.service import CapabilityLoadError, LanguageServerProcess, load_capability

__all__ = [
    "GuardReport",
    "GuardVerdict",
    "ProcessInstanceGuard",
    "ProcessLister",
    "ProcessProbeFailure",
    "ProcessRecord",
    "PsutilProcessLister",
    "EventKind",
    "InstrumentationEvent",
    "InstrumentedService",
    "instrument",
    "CapabilityLoadError",
    "LanguageServerProcess",
    "load_capability",
]

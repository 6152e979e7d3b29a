"""Logging and profiling."""

from qs_engine.telemetry.json_formatter import JSONFormatter
from qs_engine.telemetry.profiling import profile_operation

__all__ = [
    "JSONFormatter",
    "profile_operation",
]

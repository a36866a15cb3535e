"""Shared telemetry: logging setup, OpenTelemetry config, and tracing helpers."""

from inventory_sync.shared.telemetry.logging import setup_logging
from inventory_sync.shared.telemetry.telemetry import TelemetryConfig, configure_from_settings
from inventory_sync.shared.telemetry.tracing import (
    add_span_attributes,
    set_span_error,
    traced,
)

__all__ = [
    "setup_logging",
    "TelemetryConfig",
    "configure_from_settings",
    "traced",
    "add_span_attributes",
    "set_span_error",
]

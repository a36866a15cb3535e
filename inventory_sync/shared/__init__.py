"""Shared utilities and telemetry (logging, tracing)."""

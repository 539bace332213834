"""Public observability primitives: structured logging and correlation scopes."""

from qms_audit.observability.logging import (
    JsonLineFormatter,
    LoggingConfig,
    correlation_scope,
    get_correlation_context,
    reset_correlation_fields,
    set_correlation_fields,
    setup_logging,
)

__all__ = [
    "JsonLineFormatter",
    "LoggingConfig",
    "correlation_scope",
    "get_correlation_context",
    "reset_correlation_fields",
    "set_correlation_fields",
    "setup_logging",
]

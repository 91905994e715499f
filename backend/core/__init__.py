"""Core infrastructure modules for logging and correlation IDs."""

from core.correlation import (
    correlation_id_var,
    ensure_correlation_id,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from core.logging_config import configure_logging

__all__ = [
    "configure_logging",
    "ensure_correlation_id",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
    "correlation_id_var",
]

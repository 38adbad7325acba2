"""Utility modules."""

from .logging_config import (
    get_logger,
    setup_logging,
    ensure_logging,
    ConsoleFormatter,
    JsonLineFormatter,
)
from .retry import (
    retry_with_backoff,
    RetryConfig,
    DEFAULT_RETRY_CONFIG,
)
from .validation import (
    validate_postcode,
    validate_coordinates,
    validate_positive,
    validate_efficiency,
    validate_floor_count,
    is_in_uk,
    ValidationError,
)

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "ensure_logging",
    "ConsoleFormatter",
    "JsonLineFormatter",
    # Retry
    "retry_with_backoff",
    "RetryConfig",
    "DEFAULT_RETRY_CONFIG",
    # Validation
    "validate_postcode",
    "validate_coordinates",
    "validate_positive",
    "validate_efficiency",
    "validate_floor_count",
    "is_in_uk",
    "ValidationError",
]

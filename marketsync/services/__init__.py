"""Marketsync services module.

This module provides the business logic for order ingestion, financial
reconciliation and inventory deduction.
"""

from marketsync.services.exceptions import (
    AuthExpiredError,
    ConfigurationError,
    ConflictError,
    DomainError,
    ExternalServiceError,
    InsufficientStockError,
    NotFoundError,
    ServiceError,
    UpstreamRateLimitError,
    UpstreamUnavailableError,
    ValidationError,
)

__all__ = [
    # Base exceptions
    "ServiceError",
    "ConfigurationError",
    "ExternalServiceError",
    "DomainError",
    # Upstream exceptions
    "UpstreamUnavailableError",
    "UpstreamRateLimitError",
    "AuthExpiredError",
    # Domain exceptions
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InsufficientStockError",
]

"""Standardized exception hierarchy for marketsync services.

This module defines a consistent exception hierarchy across all services,
enabling proper error handling and debugging throughout the application.

Exception Hierarchy:
    ServiceError (base)
        ConfigurationError
        ExternalServiceError
            UpstreamUnavailableError
                UpstreamRateLimitError
            AuthExpiredError
        DomainError
            ValidationError
            NotFoundError
            ConflictError
            InsufficientStockError

Lookup misses while deducting inventory are not errors: they are routed to the
pending-sale queue. Only ``AuthExpiredError`` and sync-trigger failures are
meant to reach the user.

Usage:
    from marketsync.services.exceptions import (
        ServiceError,
        NotFoundError,
        UpstreamUnavailableError,
    )

    try:
        ledger.deduct_stock(product_id, 2, metadata)
    except NotFoundError:
        # Product vanished between lookup and deduction
        pass
    except ServiceError:
        # Catch-all for any service-related error
        pass
"""

from typing import Any


class ServiceError(Exception):
    """Base exception for all service-related errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ConfigurationError(ServiceError):
    """Raised when service configuration is missing or invalid."""

    pass


class ExternalServiceError(ServiceError):
    """Base exception for errors from external services/APIs."""

    pass


class UpstreamUnavailableError(ExternalServiceError):
    """Raised when a marketplace API request fails or times out.

    Attributes:
        status_code: Optional HTTP status code from the API response.
        response_body: Optional raw response body for debugging.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        """Return string representation including status code if available."""
        base_msg = self.message
        if self.status_code:
            base_msg = f"[HTTP {self.status_code}] {base_msg}"
        if self.details:
            base_msg = f"{base_msg} (details: {self.details})"
        return base_msg


class UpstreamRateLimitError(UpstreamUnavailableError):
    """Raised when the marketplace rate limit is exceeded (HTTP 429)."""

    def __init__(self, message: str = "Rate limit exceeded", retry_after: int | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("status_code", 429)
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class AuthExpiredError(ExternalServiceError):
    """Raised when the seller's session cannot be refreshed and the user must re-authenticate.

    Not an ``UpstreamUnavailableError``, so enrichment code that degrades on
    upstream failures lets it through.
    """

    def __init__(self, message: str = "Session expired, please re-authenticate", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class DomainError(ServiceError):
    """Base exception for domain/business logic errors."""

    pass


class ValidationError(DomainError):
    """Raised when a business rule rejects the requested operation."""

    pass


class NotFoundError(DomainError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: Any, details: dict[str, Any] | None = None) -> None:
        message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(message, details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(DomainError):
    """Raised when creating a resource that already exists (e.g. a duplicate mapping)."""

    pass


class InsufficientStockError(DomainError):
    """Raised when a product does not hold enough units for a deduction."""

    def __init__(self, sku: str, requested: int, available: int, details: dict[str, Any] | None = None) -> None:
        message = f"Insufficient stock for {sku}: requested {requested}, available {available}"
        super().__init__(message, details)
        self.sku = sku
        self.requested = requested
        self.available = available

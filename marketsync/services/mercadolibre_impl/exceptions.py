"""Mercado Libre client exceptions, rooted in the service hierarchy."""

from marketsync.services.exceptions import UpstreamRateLimitError, UpstreamUnavailableError


class MLAPIError(UpstreamUnavailableError):
    """Base exception for all Mercado Libre API-related errors."""

    pass


class MLRateLimitError(MLAPIError, UpstreamRateLimitError):
    """Raised when the API rate limit is exceeded (HTTP 429)."""

    pass


class MLTokenExpiredError(MLAPIError):
    """Raised when the access token is rejected (HTTP 401)."""

    pass


class MLTokenError(MLAPIError):
    """Raised when no usable token exists for a seller."""

    pass


class MLTokenRefreshError(MLTokenError):
    """Raised when the token refresh fails."""

    pass


class MLTokenValidationError(MLTokenError):
    """Raised when the token response from ML is invalid or incomplete."""

    pass


class MLTokenExchangeError(MLTokenError):
    """Raised when the authorization code cannot be exchanged for a token."""

    pass

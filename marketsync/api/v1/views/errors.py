"""Translation of service exceptions into DRF responses."""

import logging

from rest_framework import status
from rest_framework.exceptions import APIException

from marketsync.services.exceptions import (
    AuthExpiredError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from marketsync.services.order_sync_impl import OrderSyncError

logger = logging.getLogger(__name__)


class ServiceAPIException(APIException):
    def __init__(self, exc: ServiceError, status_code: int, code: str):
        super().__init__(detail={"error": exc.message, "code": code, "details": exc.details}, code=code)
        self.status_code = status_code


def to_api_exception(exc: ServiceError) -> ServiceAPIException:
    if isinstance(exc, NotFoundError):
        return ServiceAPIException(exc, status.HTTP_404_NOT_FOUND, "not_found")
    if isinstance(exc, ConflictError):
        return ServiceAPIException(exc, status.HTTP_409_CONFLICT, "conflict")
    if isinstance(exc, ValidationError):
        return ServiceAPIException(exc, status.HTTP_400_BAD_REQUEST, "invalid")
    if isinstance(exc, AuthExpiredError) or (isinstance(exc, OrderSyncError) and exc.auth_expired):
        return ServiceAPIException(exc, status.HTTP_401_UNAUTHORIZED, "reauthenticate")
    if isinstance(exc, ExternalServiceError):
        return ServiceAPIException(exc, status.HTTP_502_BAD_GATEWAY, "upstream_error")
    return ServiceAPIException(exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "service_error")


class ServiceErrorMixin:
    """Lets views raise service exceptions and get the matching HTTP status."""

    def handle_exception(self, exc):
        if isinstance(exc, ServiceError):
            api_exc = to_api_exception(exc)
            if api_exc.status_code >= 500:
                logger.error(f"{type(self).__name__} failed: {exc}", exc_info=exc)
            exc = api_exc
        return super().handle_exception(exc)

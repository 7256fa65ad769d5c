from marketsync.services.exceptions import AuthExpiredError, ServiceError

REAUTH_MESSAGE = "Mercado Libre session expired, please re-authenticate"
AUTH_HINTS = ("sesión", "session", "token")


class OrderSyncError(ServiceError):
    """A sync run that could not complete, carrying a message fit for the operator."""

    def __init__(self, message: str, details=None, auth_expired: bool = False):
        super().__init__(message, details)
        self.auth_expired = auth_expired

    @classmethod
    def from_exception(cls, exc: Exception) -> "OrderSyncError":
        if isinstance(exc, cls):
            return exc
        text = str(exc)
        if isinstance(exc, AuthExpiredError) or any(hint in text.lower() for hint in AUTH_HINTS):
            return cls(REAUTH_MESSAGE, details={"cause": text}, auth_expired=True)
        return cls(f"Sync failed: {text}", details={"cause": text})

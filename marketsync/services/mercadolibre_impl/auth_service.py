import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from marketsync.models import MercadoLibreToken
from marketsync.services.mercadolibre_impl.client import MercadoLibreClient
from marketsync.services.mercadolibre_impl.exceptions import (
    MLAPIError,
    MLTokenError,
    MLTokenExchangeError,
    MLTokenRefreshError,
    MLTokenValidationError,
)

logger = logging.getLogger(__name__)


class MercadoLibreAuthService:
    """Keeps each seller's Mercado Libre OAuth2 token fresh."""

    def __init__(self, client: Optional[MercadoLibreClient] = None, clock=timezone):
        self.client = client or MercadoLibreClient()
        self.clock = clock

    def get_valid_token(self, user_id: str) -> MercadoLibreToken:
        """
        Retrieves the seller's token, refreshing it first when it is expired or
        about to expire. The row lock keeps two workers from refreshing at once.
        """
        with transaction.atomic():
            token_record = self._lock(user_id)
            if self._is_token_expired(token_record):
                logger.debug(f"Token for seller {user_id} is expired or nearing expiration. Refreshing.")
                return self.refresh_token_for_user(token_record)
            return token_record

    def force_refresh(self, user_id: str) -> MercadoLibreToken:
        """Refreshes regardless of the stored expiry, used after the API rejected the token."""
        with transaction.atomic():
            return self.refresh_token_for_user(self._lock(user_id))

    def _lock(self, user_id: str) -> MercadoLibreToken:
        try:
            return MercadoLibreToken.objects.select_for_update().get(user_id=str(user_id))
        except MercadoLibreToken.DoesNotExist:
            logger.error(f"No Mercado Libre token found for seller {user_id}")
            raise MLTokenError(f"No token record for user_id: {user_id}")

    def _is_token_expired(self, token_record: MercadoLibreToken) -> bool:
        """Checks if the token is expired or close to expiring (buffer of 5 minutes)."""
        return self.clock.now() >= (token_record.expires_at - timedelta(minutes=5))

    def refresh_token_for_user(self, token_record: MercadoLibreToken) -> MercadoLibreToken:
        """Performs the refresh flow and overwrites the stored token."""
        try:
            token_data = self.client.refresh_token(token_record.refresh_token)
            self._validate_token_data(token_data)
        except (MLAPIError, MLTokenValidationError) as e:
            logger.error(f"Failure while refreshing ML token for seller {token_record.user_id}: {e}")
            raise MLTokenRefreshError(f"Token refresh failed for user {token_record.user_id}") from e

        token_record.access_token = token_data["access_token"]
        token_record.refresh_token = token_data["refresh_token"]
        token_record.expires_at = self.clock.now() + timedelta(seconds=token_data["expires_in"])
        token_record.save()

        logger.info(f"Token record updated for seller {token_record.user_id} after refresh.")
        return token_record

    def init_token_from_code(self, code: str, redirect_uri: str) -> MercadoLibreToken:
        """Stores the token pair of a seller who just authorized the application."""
        try:
            token_data = self.client.exchange_code_for_token(code=code, redirect_uri=redirect_uri)
            self._validate_token_data(token_data, extra=("user_id",))
        except (MLAPIError, MLTokenValidationError) as e:
            logger.error(f"Failure while exchanging ML authorization code: {e}")
            raise MLTokenExchangeError("Code exchange failed") from e

        user_id = str(token_data["user_id"])
        token_record, created = MercadoLibreToken.objects.update_or_create(
            user_id=user_id,
            defaults={
                "access_token": token_data["access_token"],
                "refresh_token": token_data["refresh_token"],
                "expires_at": self.clock.now() + timedelta(seconds=token_data["expires_in"]),
            },
        )
        logger.info(f"Token record {'created' if created else 'updated'} for seller {user_id} from code.")
        return token_record

    def _validate_token_data(self, token_data: Dict[str, Any], extra: tuple = ()) -> None:
        required_fields = ["access_token", "refresh_token", "expires_in", *extra]
        missing_fields = [field for field in required_fields if field not in token_data]
        if missing_fields:
            raise MLTokenValidationError(f"Token response missing required fields: {', '.join(missing_fields)}")

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from django.utils import timezone
from model_bakery import baker

from marketsync.models import MercadoLibreToken
from marketsync.services.mercadolibre_impl.auth_service import MercadoLibreAuthService
from marketsync.services.mercadolibre_impl.exceptions import (
    MLAPIError,
    MLTokenError,
    MLTokenExchangeError,
    MLTokenRefreshError,
)

pytestmark = pytest.mark.django_db

TOKEN_RESPONSE = {"access_token": "new_access", "refresh_token": "new_refresh", "expires_in": 21600, "user_id": 123456}


@pytest.fixture
def mock_client():
    return MagicMock()


@pytest.fixture
def auth_service(mock_client):
    return MercadoLibreAuthService(client=mock_client)


def test_valid_token_is_returned_untouched(auth_service, mock_client):
    token = baker.make(MercadoLibreToken, user_id="123456", expires_at=timezone.now() + timedelta(hours=1))

    assert auth_service.get_valid_token("123456").pk == token.pk
    mock_client.refresh_token.assert_not_called()


def test_token_close_to_expiry_is_refreshed(auth_service, mock_client):
    baker.make(MercadoLibreToken, user_id="123456", refresh_token="old", expires_at=timezone.now() + timedelta(minutes=2))
    mock_client.refresh_token.return_value = TOKEN_RESPONSE

    token = auth_service.get_valid_token("123456")

    assert token.access_token == "new_access"
    assert token.expires_at > timezone.now() + timedelta(hours=5)
    mock_client.refresh_token.assert_called_once_with("old")


def test_force_refresh_ignores_stored_expiry(auth_service, mock_client):
    baker.make(MercadoLibreToken, user_id="123456", refresh_token="old", expires_at=timezone.now() + timedelta(hours=5))
    mock_client.refresh_token.return_value = TOKEN_RESPONSE

    assert auth_service.force_refresh("123456").access_token == "new_access"


def test_missing_token_raises(auth_service):
    with pytest.raises(MLTokenError, match="No token record"):
        auth_service.get_valid_token("999")


def test_refresh_failure_raises_refresh_error(auth_service, mock_client):
    token = baker.make(MercadoLibreToken, user_id="123456")
    mock_client.refresh_token.side_effect = MLAPIError("invalid_grant", status_code=400)

    with pytest.raises(MLTokenRefreshError):
        auth_service.refresh_token_for_user(token)


def test_incomplete_refresh_response_raises(auth_service, mock_client):
    token = baker.make(MercadoLibreToken, user_id="123456")
    mock_client.refresh_token.return_value = {"access_token": "only"}

    with pytest.raises(MLTokenRefreshError):
        auth_service.refresh_token_for_user(token)


def test_init_token_from_code_creates_record(auth_service, mock_client):
    mock_client.exchange_code_for_token.return_value = TOKEN_RESPONSE

    token = auth_service.init_token_from_code("code", "https://app/callback/")

    assert token.user_id == "123456"
    assert token.refresh_token == "new_refresh"
    assert MercadoLibreToken.objects.count() == 1


def test_init_token_from_code_updates_existing(auth_service, mock_client):
    baker.make(MercadoLibreToken, user_id="123456", access_token="stale")
    mock_client.exchange_code_for_token.return_value = TOKEN_RESPONSE

    auth_service.init_token_from_code("code", "https://app/callback/")

    assert MercadoLibreToken.objects.get(user_id="123456").access_token == "new_access"


def test_init_token_from_code_requires_user_id(auth_service, mock_client):
    mock_client.exchange_code_for_token.return_value = {k: v for k, v in TOKEN_RESPONSE.items() if k != "user_id"}

    with pytest.raises(MLTokenExchangeError):
        auth_service.init_token_from_code("code", "https://app/callback/")

from datetime import timedelta

import pytest
from django.db import IntegrityError
from django.utils import timezone
from model_bakery import baker

from marketsync.models.mercadolibre_token import MercadoLibreToken

pytestmark = pytest.mark.django_db


def test_mercadolibre_token_creation():
    """Test that a MercadoLibreToken can be created with all fields."""
    expires_at = timezone.now() + timedelta(hours=6)
    token = baker.make(
        MercadoLibreToken,
        user_id="123456",
        nickname="TIENDA_SUR",
        access_token="APP_USR-access-token",
        refresh_token="TG-refresh-token",
        expires_at=expires_at,
    )

    assert token.user_id == "123456"
    assert token.nickname == "TIENDA_SUR"
    assert token.expires_at == expires_at
    assert token.created_at is not None
    assert token.updated_at is not None


def test_mercadolibre_token_str_falls_back_to_user_id():
    token = baker.make(MercadoLibreToken, user_id="7890", nickname="")
    assert str(token) == "ML Token - Seller 7890"


def test_mercadolibre_token_str_prefers_nickname():
    token = baker.make(MercadoLibreToken, user_id="7890", nickname="TIENDA_SUR")
    assert str(token) == "ML Token - Seller TIENDA_SUR"


def test_mercadolibre_token_is_expired_true():
    """Test is_expired returns True when the token is past its expiration."""
    token = baker.make(MercadoLibreToken, expires_at=timezone.now() - timedelta(minutes=10))
    assert token.is_expired() is True


def test_mercadolibre_token_is_expired_close_to_expiration():
    """Tokens within the default five minute buffer count as expired."""
    token = baker.make(MercadoLibreToken, expires_at=timezone.now() + timedelta(minutes=2))
    assert token.is_expired() is True


def test_mercadolibre_token_is_expired_false():
    token = baker.make(MercadoLibreToken, expires_at=timezone.now() + timedelta(hours=1))
    assert token.is_expired() is False


def test_mercadolibre_token_is_expired_custom_buffer():
    token = baker.make(MercadoLibreToken, expires_at=timezone.now() + timedelta(minutes=30))
    assert token.is_expired(buffer=timedelta(minutes=10)) is False
    assert token.is_expired(buffer=timedelta(hours=1)) is True


def test_mercadolibre_token_unique_user_id():
    """Test that user_id must be unique."""
    baker.make(MercadoLibreToken, user_id="unique_user")
    with pytest.raises(IntegrityError):
        baker.make(MercadoLibreToken, user_id="unique_user")

"""Tests for ApiKeyAuthentication."""

from __future__ import annotations

import pytest
from django.test import override_settings
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.test import APIRequestFactory

from marketsync.api.authentication.api_key_authentication import ApiKeyAuthentication, ApiOperator, operator_name

factory = APIRequestFactory()


class TestApiKeyAuthentication:
    """Unit tests for the X-API-KEY header authentication backend."""

    def _make_auth(self) -> ApiKeyAuthentication:
        return ApiKeyAuthentication()

    @override_settings(API_KEY="test-secret-key")
    def test_valid_key_authenticates(self) -> None:
        """A request with the correct X-API-KEY header is authenticated."""
        request = factory.get("/api/v1/", HTTP_X_API_KEY="test-secret-key")
        result = self._make_auth().authenticate(request)

        assert result is not None
        user, auth_info = result
        assert user.is_authenticated is True
        assert user.name == "api"
        assert auth_info == "api_key"

    @override_settings(API_KEY="test-secret-key")
    def test_operator_header_names_the_caller(self) -> None:
        request = factory.get("/api/v1/", HTTP_X_API_KEY="test-secret-key", HTTP_X_OPERATOR="  bodega@tienda.cl ")
        user, _ = self._make_auth().authenticate(request)

        assert user.name == "bodega@tienda.cl"

    @override_settings(API_KEY="test-secret-key")
    def test_missing_header_returns_none(self) -> None:
        """When X-API-KEY header is absent, return None to allow the next auth backend."""
        request = factory.get("/api/v1/")

        assert self._make_auth().authenticate(request) is None

    @override_settings(API_KEY="test-secret-key")
    def test_invalid_key_raises(self) -> None:
        request = factory.get("/api/v1/", HTTP_X_API_KEY="test-secret-kex")

        with pytest.raises(AuthenticationFailed, match="Invalid API key"):
            self._make_auth().authenticate(request)

    @override_settings(API_KEY="")
    def test_empty_configured_key_raises(self) -> None:
        """If API_KEY is empty, all API-key requests are rejected."""
        request = factory.get("/api/v1/", HTTP_X_API_KEY="any-value")

        with pytest.raises(AuthenticationFailed, match="not configured"):
            self._make_auth().authenticate(request)

    def test_authenticate_header(self) -> None:
        assert self._make_auth().authenticate_header(factory.get("/")) == "X-API-KEY"


class TestOperatorName:
    def test_api_operator(self) -> None:
        request = factory.get("/")
        request.user = ApiOperator("ops")

        assert operator_name(request) == "ops"

    def test_anonymous_falls_back(self) -> None:
        request = factory.get("/")

        assert operator_name(request) == "api"


@pytest.mark.django_db
class TestApiKeyOnEndpoints:
    @override_settings(API_KEY="test-secret-key", API_ALLOWED_IPS=[])
    def test_request_without_key_is_rejected(self, client) -> None:
        response = client.get("/api/v1/pending-sales/")

        assert response.status_code == 401
        assert response["WWW-Authenticate"] == "X-API-KEY"

    def test_request_with_key_is_accepted(self, api_client) -> None:
        assert api_client.get("/api/v1/pending-sales/").status_code == 200

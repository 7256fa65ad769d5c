"""Tests for GET /api/v1/health/."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from django.db import OperationalError
from rest_framework import status
from rest_framework.test import APIClient

URL = "/api/v1/health/"


@pytest.mark.django_db
def test_health_is_public() -> None:
    response = APIClient().get(URL)

    assert response.status_code == status.HTTP_200_OK
    assert response.data == {"status": "ok", "database": "ok"}


@patch("marketsync.api.v1.views.health_check.connection")
def test_health_reports_database_outage(mock_connection) -> None:
    mock_connection.ensure_connection.side_effect = OperationalError("connection refused")

    response = APIClient().get(URL)

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.data["database"] == "unavailable"

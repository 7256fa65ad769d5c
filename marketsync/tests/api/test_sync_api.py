"""Tests for POST /api/v1/orders/sync/ and the task status endpoint."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from rest_framework import status

from marketsync.services.order_sync_impl.exceptions import REAUTH_MESSAGE

SYNC_URL = "/api/v1/orders/sync/"

pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def seller(settings):
    settings.MERCADOLIBRE_SELLER_ID = "123456"


class TestOrderSync:
    @patch("marketsync.api.v1.views.sync.sync_orders_for_date")
    def test_queue_single_date(self, mock_task, api_client) -> None:
        mock_task.delay.return_value = MagicMock(id="task-1")

        response = api_client.post(SYNC_URL, {"date": "2025-03-14"}, format="json")

        assert response.status_code == status.HTTP_202_ACCEPTED
        assert response.data == {"task_id": "task-1", "seller_id": 123456, "window": "2025-03-14"}
        mock_task.delay.assert_called_once_with(123456, "2025-03-14")

    @patch("marketsync.api.v1.views.sync.sync_orders_for_month")
    def test_queue_month_for_explicit_seller(self, mock_task, api_client) -> None:
        mock_task.delay.return_value = MagicMock(id="task-2")

        response = api_client.post(SYNC_URL, {"month": "2025-02", "seller_id": 42}, format="json")

        assert response.status_code == status.HTTP_202_ACCEPTED
        mock_task.delay.assert_called_once_with(42, "2025-02")

    @patch("marketsync.api.v1.views.sync.sync_recent_status_changes")
    def test_queue_status_changes(self, mock_task, api_client) -> None:
        mock_task.delay.return_value = MagicMock(id="task-3")

        response = api_client.post(SYNC_URL, {"status_changes": True, "days": 5}, format="json")

        assert response.status_code == status.HTTP_202_ACCEPTED
        mock_task.delay.assert_called_once_with(123456, 5)

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"date": "2025-03-14", "month": "2025-03"},
            {"month": "2025-13"},
            {"status_changes": True, "days": 0},
        ],
    )
    def test_invalid_windows(self, api_client, body) -> None:
        response = api_client.post(SYNC_URL, body, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestOrderSyncStatus:
    @patch("marketsync.api.v1.views.sync.AsyncResult")
    def test_successful_task(self, mock_async_result, api_client) -> None:
        mock_async_result.return_value = MagicMock(state="SUCCESS", result={"synced": 3}, **{"successful.return_value": True})

        response = api_client.get(f"{SYNC_URL}task-1/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"task_id": "task-1", "state": "SUCCESS", "result": {"synced": 3}}

    @patch("marketsync.api.v1.views.sync.AsyncResult")
    def test_pending_task(self, mock_async_result, api_client) -> None:
        mock_async_result.return_value = MagicMock(state="PENDING", **{"successful.return_value": False, "failed.return_value": False})

        response = api_client.get(f"{SYNC_URL}task-1/")

        assert response.data == {"task_id": "task-1", "state": "PENDING"}

    @patch("marketsync.api.v1.views.sync.AsyncResult")
    def test_expired_session_answers_401(self, mock_async_result, api_client) -> None:
        mock_async_result.return_value = MagicMock(
            state="FAILURE", result=Exception(REAUTH_MESSAGE), **{"successful.return_value": False, "failed.return_value": True}
        )

        response = api_client.get(f"{SYNC_URL}task-1/")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data["reauthenticate"] is True

    @patch("marketsync.api.v1.views.sync.AsyncResult")
    def test_other_failure(self, mock_async_result, api_client) -> None:
        mock_async_result.return_value = MagicMock(
            state="FAILURE", result=Exception("Sync failed: boom"), **{"successful.return_value": False, "failed.return_value": True}
        )

        response = api_client.get(f"{SYNC_URL}task-1/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["error"] == "Sync failed: boom"

import logging

from celery.result import AsyncResult
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from marketsync.api.v1.serializers.sync import OrderSyncRequestSerializer
from marketsync.api.v1.views.errors import ServiceErrorMixin
from marketsync.services.order_sync_impl.exceptions import REAUTH_MESSAGE
from marketsync.services.platforms import resolve_seller_id
from marketsync.tasks import sync_orders_for_date, sync_orders_for_month, sync_recent_status_changes

logger = logging.getLogger(__name__)


class OrderSyncView(ServiceErrorMixin, APIView):
    """
    POST /api/v1/orders/sync/ queues a sync and answers 202 with the task id.

    Body: ``{"date": "YYYY-MM-DD"}``, ``{"month": "YYYY-MM"}`` or
    ``{"status_changes": true, "days": 2}``, each with an optional
    ``seller_id``.
    """

    def post(self, request: Request) -> Response:
        serializer = OrderSyncRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        seller_id = resolve_seller_id(data.get("seller_id"))

        if data.get("date"):
            task = sync_orders_for_date.delay(seller_id, data["date"].isoformat())
            window = data["date"].isoformat()
        elif data.get("month"):
            task = sync_orders_for_month.delay(seller_id, data["month"])
            window = data["month"]
        else:
            task = sync_recent_status_changes.delay(seller_id, data["days"])
            window = f"last {data['days']} days (status changes)"

        logger.info(f"Queued order sync {task.id} for seller {seller_id}: {window}.")
        return Response({"task_id": task.id, "seller_id": seller_id, "window": window}, status=status.HTTP_202_ACCEPTED)


class OrderSyncStatusView(APIView):
    """GET /api/v1/orders/sync/<task_id>/ reports the state of a queued sync."""

    def get(self, request: Request, task_id: str) -> Response:
        result = AsyncResult(task_id)
        body = {"task_id": task_id, "state": result.state}
        if result.successful():
            body["result"] = result.result
        elif result.failed():
            error = str(result.result)
            body["error"] = error
            if REAUTH_MESSAGE in error:
                body["reauthenticate"] = True
                return Response(body, status=status.HTTP_401_UNAUTHORIZED)
        return Response(body)

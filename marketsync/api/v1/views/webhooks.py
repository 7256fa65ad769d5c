import logging

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from marketsync.api.permissions.webhook_permission import FalabellaWebhookPermission, MercadoLibreWebhookPermission
from marketsync.services.stock_deduction_impl import FalabellaNotification
from marketsync.tasks import process_falabella_notification, process_mercadolibre_notification
from marketsync.tasks.notifications import ORDER_TOPICS

logger = logging.getLogger(__name__)


class MercadoLibreWebhookView(APIView):
    """
    POST /api/v1/webhooks/mercadolibre/

    Mercado Libre expects a fast 200, so order notifications are queued and
    handled by a Celery task. Other topics are acknowledged and dropped.
    """

    authentication_classes: list[type] = []
    permission_classes = [AllowAny, MercadoLibreWebhookPermission]

    def post(self, request: Request) -> Response:
        payload = request.data if isinstance(request.data, dict) else {}
        topic = payload.get("topic")
        if topic not in ORDER_TOPICS:
            logger.debug(f"Acknowledged Mercado Libre notification with topic {topic}.")
            return Response({"status": "ignored"})

        process_mercadolibre_notification.delay(dict(payload))
        logger.info(f"Queued Mercado Libre notification for {payload.get('resource')}.")
        return Response({"status": "queued"})


class FalabellaWebhookView(APIView):
    """POST /api/v1/webhooks/falabella/ validates the order notification and queues its deduction."""

    authentication_classes: list[type] = []
    permission_classes = [AllowAny, FalabellaWebhookPermission]

    def post(self, request: Request) -> Response:
        try:
            notification = FalabellaNotification.model_validate(request.data)
        except ValueError as e:
            return Response({"error": "Invalid notification", "details": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        process_falabella_notification.delay(notification.model_dump(mode="json"))
        logger.info(f"Queued Falabella order {notification.order_id}.")
        return Response({"status": "queued", "order_id": notification.order_id}, status=status.HTTP_202_ACCEPTED)

from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from marketsync.api.v1.serializers.reports import AuditQuerySerializer, UnprocessedOrderSerializer
from marketsync.api.v1.serializers.sync import ReprocessOrderSerializer
from marketsync.api.v1.views.errors import ServiceErrorMixin
from marketsync.models import Platform
from marketsync.services.exceptions import ValidationError
from marketsync.services.platforms import resolve_seller_id
from marketsync.services.stock_deduction_impl import ReconciliationService, StockDeductionService


class AuditSummaryView(ServiceErrorMixin, APIView):
    """GET /api/v1/inventory/audit/?date=YYYY-MM-DD compares a day of orders against the deduction trail."""

    def get(self, request: Request) -> Response:
        query = AuditQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        seller_id = resolve_seller_id(query.validated_data.get("seller_id"))
        summary = ReconciliationService().get_audit_summary(seller_id, query.validated_data["date"])
        return Response(summary.as_dict())


class UnprocessedOrdersView(ServiceErrorMixin, APIView):
    """GET /api/v1/inventory/audit/unprocessed/?date=YYYY-MM-DD"""

    def get(self, request: Request) -> Response:
        query = AuditQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        seller_id = resolve_seller_id(query.validated_data.get("seller_id"))
        orders = ReconciliationService().get_unprocessed_orders(seller_id, query.validated_data["date"])
        return Response({"count": len(orders), "orders": UnprocessedOrderSerializer(orders, many=True).data})


class ReprocessOrderView(ServiceErrorMixin, APIView):
    """POST /api/v1/inventory/orders/<platform>/<order_id>/reprocess/ retries the lines that were not found."""

    def post(self, request: Request, platform: str, order_id: str) -> Response:
        if platform not in (Platform.MERCADOLIBRE, Platform.FALABELLA):
            raise ValidationError(f"Unsupported platform '{platform}'")
        serializer = ReprocessOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        seller_id = None
        if platform == Platform.MERCADOLIBRE and data.get("seller_id"):
            seller_id = resolve_seller_id(data["seller_id"])
        result = StockDeductionService().reprocess_order(platform, order_id, seller_id=seller_id, payload=data.get("payload"))
        return Response(result.as_dict())

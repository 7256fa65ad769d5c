from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from marketsync.api.v1.serializers.reports import DailySalesQuerySerializer, RangeSalesQuerySerializer
from marketsync.api.v1.views.errors import ServiceErrorMixin
from marketsync.services.platforms import resolve_seller_id
from marketsync.services.sales_report_impl import SalesAggregator


class DailySalesView(ServiceErrorMixin, APIView):
    """
    GET /api/v1/sales/daily/?date=YYYY-MM-DD

    Totals for the day bucketed by logistics class (Full, Flex, Centro de
    Envío) plus the order list of each bucket. ``status`` narrows only the
    listed orders; the totals always cover every order of the day.
    """

    def get(self, request: Request) -> Response:
        query = DailySalesQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        report = SalesAggregator().get_daily_sales(
            resolve_seller_id(params.get("seller_id")),
            params["date"],
            date_mode=params["date_mode"],
            logistic_type=params.get("logistic_type"),
            status_filter=params["status"],
        )
        return Response(report.model_dump(mode="json"))


class RangeSalesView(ServiceErrorMixin, APIView):
    """GET /api/v1/sales/range/?from_date=...&to_date=...&page=1&limit=20&group_by_pack=false"""

    def get(self, request: Request) -> Response:
        query = RangeSalesQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        report = SalesAggregator().get_range_sales(
            resolve_seller_id(params.get("seller_id")),
            params["from_date"],
            params["to_date"],
            page=params["page"],
            limit=params["limit"],
            logistic_type=params.get("logistic_type"),
            date_mode=params["date_mode"],
            status_filter=params["status"],
            group_by_pack=params["group_by_pack"],
        )
        return Response(report.model_dump(mode="json"))

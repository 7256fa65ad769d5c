from django.db.models import QuerySet
from rest_framework import mixins
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from marketsync.api.authentication.api_key_authentication import operator_name
from marketsync.api.v1.filters.inventory import PendingSaleFilter
from marketsync.api.v1.serializers.inventory import PendingSaleSerializer, ResolvePendingSaleSerializer
from marketsync.api.v1.views.errors import ServiceErrorMixin
from marketsync.models import PendingSale
from marketsync.services.pending_sales_impl import PendingSaleService


class PendingSaleViewSet(ServiceErrorMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin, GenericViewSet):
    """
    Queue of sales whose SKU could not be matched to a product.

    GET  /api/v1/pending-sales/                 Paginated queue, filterable by status and platform.
    GET  /api/v1/pending-sales/{id}/            One entry with its raw line payload.
    POST /api/v1/pending-sales/{id}/resolve/    Deducts stock from the chosen product.
    POST /api/v1/pending-sales/{id}/ignore/     Drops the entry without touching stock.
    GET  /api/v1/pending-sales/count/           Number of entries still pending.
    """

    serializer_class = PendingSaleSerializer
    filterset_class = PendingSaleFilter

    def get_queryset(self) -> QuerySet[PendingSale]:
        return PendingSaleService().find_all()

    @action(detail=True, methods=["post"])
    def resolve(self, request: Request, pk=None) -> Response:
        serializer = ResolvePendingSaleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        sale = PendingSaleService().resolve(
            int(pk),
            serializer.validated_data["product_id"],
            resolved_by=operator_name(request),
            create_mapping=serializer.validated_data["create_mapping"],
        )
        return Response(PendingSaleSerializer(sale).data)

    @action(detail=True, methods=["post"])
    def ignore(self, request: Request, pk=None) -> Response:
        sale = PendingSaleService().ignore(int(pk), resolved_by=operator_name(request))
        return Response(PendingSaleSerializer(sale).data)

    @action(detail=False, methods=["get"])
    def count(self, request: Request) -> Response:
        return Response({"pending": PendingSaleService().get_count()})

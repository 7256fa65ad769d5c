from django.db.models import QuerySet
from rest_framework import mixins, status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from marketsync.api.authentication.api_key_authentication import operator_name
from marketsync.api.v1.filters.inventory import ProductMappingFilter
from marketsync.api.v1.serializers.inventory import ProductMappingSerializer
from marketsync.api.v1.views.errors import ServiceErrorMixin
from marketsync.models import ProductMapping
from marketsync.services.inventory_impl import ProductMappingService


class ProductMappingViewSet(ServiceErrorMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin, GenericViewSet):
    """
    Platform SKU to product mappings.

    POST   /api/v1/mappings/               Create; a duplicate answers 409.
    POST   /api/v1/mappings/{id}/toggle/   Flip ``is_active``.
    DELETE /api/v1/mappings/{id}/
    """

    serializer_class = ProductMappingSerializer
    filterset_class = ProductMappingFilter

    def get_queryset(self) -> QuerySet[ProductMapping]:
        return ProductMappingService().find_all()

    def create(self, request: Request) -> Response:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        mapping = ProductMappingService().create(
            platform_id=data["platform"].id,
            platform_sku=data["platform_sku"],
            product_id=data["product"].id,
            quantity=data.get("quantity", 1),
            created_by=operator_name(request),
        )
        return Response(self.get_serializer(mapping).data, status=status.HTTP_201_CREATED)

    def destroy(self, request: Request, pk=None) -> Response:
        ProductMappingService().delete(int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def toggle(self, request: Request, pk=None) -> Response:
        mapping = ProductMappingService().toggle_active(int(pk))
        return Response(self.get_serializer(mapping).data)

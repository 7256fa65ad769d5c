import django_filters

from marketsync.models import PendingSale, ProductMapping


class PendingSaleFilter(django_filters.FilterSet):
    """FilterSet for the pending-sale queue."""

    status = django_filters.ChoiceFilter(choices=PendingSale.Status.choices)
    platform = django_filters.CharFilter(field_name="platform__code", lookup_expr="iexact")
    platform_sku = django_filters.CharFilter(field_name="platform_sku", lookup_expr="icontains")
    order_id = django_filters.CharFilter(field_name="platform_order_id")
    sale_date_from = django_filters.DateFilter(field_name="sale_date", lookup_expr="date__gte")
    sale_date_to = django_filters.DateFilter(field_name="sale_date", lookup_expr="date__lte")

    class Meta:
        model = PendingSale
        fields = ["status", "platform", "platform_sku", "order_id", "sale_date_from", "sale_date_to"]


class ProductMappingFilter(django_filters.FilterSet):
    platform = django_filters.CharFilter(field_name="platform__code", lookup_expr="iexact")
    platform_sku = django_filters.CharFilter(field_name="platform_sku", lookup_expr="iexact")
    product = django_filters.NumberFilter(field_name="product_id")
    is_active = django_filters.BooleanFilter(field_name="is_active")

    class Meta:
        model = ProductMapping
        fields = ["platform", "platform_sku", "product", "is_active"]

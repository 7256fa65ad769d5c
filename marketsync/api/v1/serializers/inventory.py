from rest_framework import serializers

from marketsync.models import PendingSale, ProductMapping


class PendingSaleSerializer(serializers.ModelSerializer):
    platform = serializers.CharField(source="platform.code", read_only=True)
    mapped_to_sku = serializers.CharField(source="mapped_to_product.internal_sku", read_only=True, default=None)

    class Meta:
        model = PendingSale
        fields = [
            "id",
            "platform",
            "platform_order_id",
            "platform_sku",
            "quantity",
            "sale_date",
            "status",
            "mapped_to_product",
            "mapped_to_sku",
            "resolved_by",
            "resolved_at",
            "raw_data",
            "created_at",
        ]
        read_only_fields = fields


class ResolvePendingSaleSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    create_mapping = serializers.BooleanField(default=False)


class ProductMappingSerializer(serializers.ModelSerializer):
    """Read and create shape of a platform SKU mapping."""

    platform_code = serializers.CharField(source="platform.code", read_only=True)
    internal_sku = serializers.CharField(source="product.internal_sku", read_only=True)

    class Meta:
        model = ProductMapping
        fields = [
            "id",
            "platform",
            "platform_code",
            "platform_sku",
            "product",
            "internal_sku",
            "quantity",
            "is_active",
            "created_by",
            "created_at",
        ]
        read_only_fields = ["id", "platform_code", "internal_sku", "is_active", "created_by", "created_at"]
        # Duplicates are reported by the mapping service as a 409.
        validators: list = []

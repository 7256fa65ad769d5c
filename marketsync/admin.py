from django.contrib import admin

from marketsync.models import (
    Category,
    FaztConfiguration,
    MarketplaceUser,
    MonthlyFlexCost,
    Order,
    OrderItem,
    Payment,
    PendingSale,
    Platform,
    Product,
    ProductAudit,
    ProductHistory,
    ProductMapping,
    SecondarySku,
)


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "date_approved", "status", "logistic_type", "total_amount", "pack_id")
    list_filter = ("status", "logistic_type")
    search_fields = ("id", "pack_id", "receiver_name", "items__seller_sku")
    inlines = [OrderItemInline, PaymentInline]


class SecondarySkuInline(admin.TabularInline):
    model = SecondarySku
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("internal_sku", "name", "stock", "stock_bodega", "is_active")
    list_filter = ("is_active", "category")
    search_fields = ("internal_sku", "name", "secondary_skus__secondary_sku")
    inlines = [SecondarySkuInline]


@admin.register(ProductMapping)
class ProductMappingAdmin(admin.ModelAdmin):
    list_display = ("platform_sku", "platform", "product", "quantity", "is_active")
    list_filter = ("platform", "is_active")
    search_fields = ("platform_sku", "product__internal_sku")


@admin.register(PendingSale)
class PendingSaleAdmin(admin.ModelAdmin):
    list_display = ("platform_sku", "platform", "platform_order_id", "quantity", "sale_date", "status")
    list_filter = ("status", "platform")
    search_fields = ("platform_sku", "platform_order_id")


@admin.register(ProductAudit)
class ProductAuditAdmin(admin.ModelAdmin):
    list_display = ("order_id", "platform_name", "internal_sku", "status", "quantity_discounted", "created_at")
    list_filter = ("status", "platform_name")
    search_fields = ("order_id", "internal_sku", "secondary_sku")


@admin.register(ProductHistory)
class ProductHistoryAdmin(admin.ModelAdmin):
    list_display = ("product", "field_name", "old_value", "new_value", "change_type", "changed_by", "created_at")
    list_filter = ("change_type", "field_name")
    search_fields = ("product__internal_sku", "platform_order_id")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


admin.site.register(Platform)
admin.site.register(Category)
admin.site.register(MarketplaceUser)
admin.site.register(FaztConfiguration)
admin.site.register(MonthlyFlexCost)

from django.urls import URLPattern, URLResolver, path
from rest_framework.routers import DefaultRouter

from marketsync.api.v1.views.audit import AuditSummaryView, ReprocessOrderView, UnprocessedOrdersView
from marketsync.api.v1.views.health_check import HealthCheckView
from marketsync.api.v1.views.mappings import ProductMappingViewSet
from marketsync.api.v1.views.pending_sales import PendingSaleViewSet
from marketsync.api.v1.views.sales import DailySalesView, RangeSalesView
from marketsync.api.v1.views.sync import OrderSyncStatusView, OrderSyncView
from marketsync.api.v1.views.webhooks import FalabellaWebhookView, MercadoLibreWebhookView

router = DefaultRouter()
router.register(r"pending-sales", PendingSaleViewSet, basename="pending-sale")
router.register(r"mappings", ProductMappingViewSet, basename="product-mapping")

urlpatterns: list[URLPattern | URLResolver] = [
    *router.urls,
    path("health/", HealthCheckView.as_view(), name="api-health-check"),
    path("sales/daily/", DailySalesView.as_view(), name="sales-daily"),
    path("sales/range/", RangeSalesView.as_view(), name="sales-range"),
    path("orders/sync/", OrderSyncView.as_view(), name="orders-sync"),
    path("orders/sync/<str:task_id>/", OrderSyncStatusView.as_view(), name="orders-sync-status"),
    path("inventory/audit/", AuditSummaryView.as_view(), name="inventory-audit"),
    path("inventory/audit/unprocessed/", UnprocessedOrdersView.as_view(), name="inventory-audit-unprocessed"),
    path(
        "inventory/orders/<str:platform>/<str:order_id>/reprocess/",
        ReprocessOrderView.as_view(),
        name="inventory-order-reprocess",
    ),
    path("webhooks/mercadolibre/", MercadoLibreWebhookView.as_view(), name="webhook-mercadolibre"),
    path("webhooks/falabella/", FalabellaWebhookView.as_view(), name="webhook-falabella"),
]

from django.db import models
from django.utils.translation import gettext_lazy as _


class LogisticType(models.TextChoices):
    """Logistics paths reported by Mercado Libre, plus the two free-shipping sub-types."""

    FULFILLMENT = "fulfillment", _("Full")
    SELF_SERVICE = "self_service", _("Flex")
    SELF_SERVICE_COST = "self_service_cost", _("Flex (free shipping)")
    CROSS_DOCKING = "cross_docking", _("Flex (cross docking)")
    CROSS_DOCKING_COST = "cross_docking_cost", _("Flex (cross docking, free shipping)")
    XD_DROP_OFF = "xd_drop_off", _("Drop-off")
    DROP_OFF = "drop_off", _("Drop-off")


# Flex where the buyer pays shipping to the seller.
FLEX_INCOME_TYPES = frozenset({LogisticType.SELF_SERVICE.value, LogisticType.CROSS_DOCKING.value})
# Flex free-shipping promotions where the seller pays the courier.
FLEX_COST_TYPES = frozenset({LogisticType.SELF_SERVICE_COST.value, LogisticType.CROSS_DOCKING_COST.value})
FLEX_TYPES = FLEX_INCOME_TYPES | FLEX_COST_TYPES
# Flex orders delivered by the contracted courier and billed through its volume tiers.
COURIER_FLEX_TYPES = frozenset({LogisticType.SELF_SERVICE.value, LogisticType.SELF_SERVICE_COST.value})


class MarketplaceUser(models.Model):
    """Buyer or seller account as reported by the marketplace."""

    id = models.BigIntegerField(primary_key=True)
    nickname = models.CharField(max_length=255, blank=True, default="")
    first_name = models.CharField(max_length=255, blank=True, default="")
    last_name = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.nickname or 'user'} ({self.id})"


class Order(models.Model):
    """
    A marketplace order. The marketplace-assigned id is the primary key and the
    idempotency key for every sync.
    """

    class Status(models.TextChoices):
        CONFIRMED = "confirmed", _("Confirmed")
        PAYMENT_REQUIRED = "payment_required", _("Payment required")
        PAYMENT_IN_PROCESS = "payment_in_process", _("Payment in process")
        PARTIALLY_PAID = "partially_paid", _("Partially paid")
        PAID = "paid", _("Paid")
        PARTIALLY_REFUNDED = "partially_refunded", _("Partially refunded")
        PENDING_CANCEL = "pending_cancel", _("Pending cancel")
        CANCELLED = "cancelled", _("Cancelled")
        INVALID = "invalid", _("Invalid")

    id = models.BigIntegerField(primary_key=True)
    date_created = models.DateTimeField(null=True, blank=True)
    date_approved = models.DateTimeField(null=True, blank=True, db_index=True)
    last_updated = models.DateTimeField(null=True, blank=True)
    date_closed = models.DateTimeField(null=True, blank=True)
    expiration_date = models.DateTimeField(null=True, blank=True)
    # Upstream statuses are stored verbatim; Status lists the known values.
    status = models.CharField(max_length=32, db_index=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    currency_id = models.CharField(max_length=8, blank=True, default="")
    buyer = models.ForeignKey(
        MarketplaceUser,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchases",
    )
    seller = models.ForeignKey(
        MarketplaceUser,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
    )
    pack_id = models.BigIntegerField(null=True, blank=True, db_index=True)
    shipping_id = models.BigIntegerField(null=True, blank=True)
    logistic_type = models.CharField(max_length=32, null=True, blank=True, db_index=True)
    shipment_status = models.CharField(max_length=32, null=True, blank=True)
    receiver_name = models.CharField(max_length=255, null=True, blank=True)
    receiver_phone = models.CharField(max_length=64, null=True, blank=True)
    receiver_rut = models.CharField(max_length=32, null=True, blank=True)
    receiver_city_id = models.CharField(max_length=64, null=True, blank=True)
    fulfilled = models.BooleanField(null=True, blank=True)
    tags = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date_approved"]
        indexes = [
            models.Index(fields=["seller", "date_approved"]),
        ]

    @property
    def shipment_key(self) -> int:
        """Orders of the same pack travel in one physical shipment."""
        return self.pack_id or self.id

    def __str__(self):
        return f"Order {self.id} ({self.status})"


class OrderItem(models.Model):
    """Line item of an order. Rebuilt from scratch on every sync of its order."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    item_id = models.CharField(max_length=32, db_index=True)
    variation_id = models.BigIntegerField(null=True, blank=True)
    title = models.CharField(max_length=500, blank=True, default="")
    category_id = models.CharField(max_length=32, null=True, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    full_unit_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    currency_id = models.CharField(max_length=8, blank=True, default="")
    condition = models.CharField(max_length=32, null=True, blank=True)
    warranty = models.CharField(max_length=255, null=True, blank=True)
    seller_sku = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    thumbnail = models.URLField(max_length=2000, null=True, blank=True)

    def __str__(self):
        return f"{self.quantity} x {self.title or self.item_id}"


class Payment(models.Model):
    """
    Payment of an order together with the reconciled financial breakdown.

    ``shipping_cost`` holds shipping income for Flex orders where the buyer
    pays shipping, and the seller's shipping charge for every other path.
    """

    class Status(models.TextChoices):
        APPROVED = "approved", _("Approved")
        PENDING = "pending", _("Pending")
        IN_PROCESS = "in_process", _("In process")
        IN_MEDIATION = "in_mediation", _("In mediation")
        REJECTED = "rejected", _("Rejected")
        CANCELLED = "cancelled", _("Cancelled")
        REFUNDED = "refunded", _("Refunded")
        CHARGED_BACK = "charged_back", _("Charged back")

    id = models.BigIntegerField(primary_key=True)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="payments")
    payment_method_id = models.CharField(max_length=64, null=True, blank=True)
    payment_type = models.CharField(max_length=64, null=True, blank=True)
    status = models.CharField(max_length=32, db_index=True)
    transaction_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    iva_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    marketplace_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    shipping_bonus = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    courier_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    fazt_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    fazt_is_special_zone = models.BooleanField(default=False)
    currency_id = models.CharField(max_length=8, blank=True, default="")
    date_approved = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Payment {self.id} for order {self.order_id} ({self.status})"

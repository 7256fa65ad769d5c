from django.db import models
from django.utils.translation import gettext_lazy as _

from marketsync.models.product import Platform, Product


class PendingSale(models.Model):
    """An inbound sale whose SKU could not be resolved, waiting for an operator."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        MAPPED = "mapped", _("Mapped")
        IGNORED = "ignored", _("Ignored")

    platform = models.ForeignKey(Platform, on_delete=models.PROTECT, related_name="pending_sales")
    platform_order_id = models.CharField(max_length=64, db_index=True)
    platform_sku = models.CharField(max_length=100, db_index=True)
    quantity = models.PositiveIntegerField(default=1)
    sale_date = models.DateTimeField(db_index=True)
    raw_data = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING, db_index=True)
    mapped_to_product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="resolved_pending_sales",
    )
    resolved_by = models.CharField(max_length=255, null=True, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-sale_date"]

    def __str__(self):
        return f"{self.platform_sku} x{self.quantity} (order {self.platform_order_id}, {self.status})"


class ProductHistory(models.Model):
    """Append-only ledger entry for a change on a product field."""

    class ChangeType(models.TextChoices):
        MANUAL = "manual", _("Manual")
        ORDER = "order", _("Order")
        ADJUSTMENT = "adjustment", _("Adjustment")
        IMPORT = "import", _("Import")

    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, related_name="history")
    field_name = models.CharField(max_length=64)
    old_value = models.TextField(null=True, blank=True)
    new_value = models.TextField(null=True, blank=True)
    changed_by = models.CharField(max_length=255, default="system")
    change_type = models.CharField(max_length=16, choices=ChangeType.choices, default=ChangeType.MANUAL, db_index=True)
    change_reason = models.TextField(null=True, blank=True)
    platform = models.ForeignKey(Platform, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    platform_order_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    adjustment_amount = models.IntegerField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name_plural = _("Product history")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("ProductHistory entries are append-only and cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("ProductHistory entries are append-only and cannot be deleted.")

    def __str__(self):
        return f"{self.field_name}: {self.old_value} -> {self.new_value} ({self.change_type})"


class ProductAudit(models.Model):
    """
    Outcome of one inventory deduction attempt for an order line. Any row for
    an (order, platform) pair marks that order as processed.
    """

    class Status(models.TextChoices):
        OK_INTERNO = "OK_INTERNO", _("Deducted from local stock")
        OK_FULL = "OK_FULL", _("Fulfilled by the marketplace")
        NOT_FOUND = "NOT_FOUND", _("Not found or insufficient stock")
        CANCELLED = "CANCELLED", _("Cancelled and restored")

    order_id = models.CharField(max_length=64, db_index=True)
    platform_name = models.CharField(max_length=32, db_index=True)
    internal_sku = models.CharField(max_length=100, null=True, blank=True)
    secondary_sku = models.CharField(max_length=100, null=True, blank=True)
    logistic_type = models.CharField(max_length=32, null=True, blank=True)
    quantity_discounted = models.IntegerField(default=0)
    error_message = models.TextField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["order_id", "platform_name"]),
        ]

    def __str__(self):
        return f"{self.platform_name} order {self.order_id}: {self.status}"

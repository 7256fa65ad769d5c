from django.db import models
from django.utils.translation import gettext_lazy as _


class Platform(models.Model):
    """A sales channel whose SKUs are mapped to local products."""

    MERCADOLIBRE = "mercadolibre"
    FALABELLA = "falabella"

    code = models.SlugField(max_length=32, unique=True)
    name = models.CharField(max_length=100)
    is_active = models.BooleanField(default=True)
    config = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class Category(models.Model):
    name = models.CharField(max_length=255, unique=True)

    class Meta:
        verbose_name_plural = _("Categories")

    def __str__(self):
        return self.name


class Product(models.Model):
    """
    A locally stocked product. ``stock`` may go negative: an oversell is kept
    visible to operators instead of being clamped.
    """

    internal_sku = models.CharField(max_length=100, unique=True)
    name = models.CharField(max_length=500)
    stock = models.IntegerField(default=0)
    stock_bodega = models.IntegerField(default=0, help_text=_("Secondary warehouse pool."))
    cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    image_url = models.URLField(max_length=2000, null=True, blank=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name="products")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.internal_sku} - {self.name}"


class SecondarySku(models.Model):
    """Binds a marketplace listing (optionally one of its variations) to a product."""

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="secondary_skus")
    platform = models.ForeignKey(Platform, on_delete=models.CASCADE, related_name="secondary_skus")
    secondary_sku = models.CharField(_("Listing ID"), max_length=100, db_index=True)
    variation_id = models.BigIntegerField(null=True, blank=True)
    stock_quantity = models.IntegerField(default=0)
    publication_link = models.URLField(max_length=2000, null=True, blank=True)
    logistic_type = models.CharField(max_length=32, null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["platform", "secondary_sku", "variation_id"]),
        ]

    def __str__(self):
        suffix = f"/{self.variation_id}" if self.variation_id else ""
        return f"{self.secondary_sku}{suffix} -> {self.product.internal_sku}"


class ProductMapping(models.Model):
    """
    Operator-curated link from a platform SKU to a local product. ``quantity``
    is the number of local units one platform unit represents.
    """

    platform = models.ForeignKey(Platform, on_delete=models.CASCADE, related_name="mappings")
    platform_sku = models.CharField(max_length=100, db_index=True)
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="mappings")
    quantity = models.PositiveIntegerField(default=1)
    is_active = models.BooleanField(default=True)
    created_by = models.CharField(max_length=255, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["platform", "platform_sku", "product"], name="unique_platform_sku_product"),
        ]

    def __str__(self):
        return f"{self.platform_sku} x{self.quantity} -> {self.product.internal_sku}"

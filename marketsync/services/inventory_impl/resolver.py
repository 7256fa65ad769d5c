from dataclasses import dataclass
from typing import Optional

from marketsync.models import Product, ProductMapping, SecondarySku


@dataclass(frozen=True)
class ResolvedProduct:
    """A local product together with how many of its units one platform unit represents."""

    product: Product
    multiplier: int = 1
    via: str = "internal_sku"


class ProductResolver:
    """Resolves platform SKUs and listing ids to local products."""

    def find_product_by_sku(self, platform_id: int, sku: str) -> Optional[Product]:
        """Active mapping for (platform, sku) first, then a direct internal SKU match."""
        if not sku:
            return None
        mapping = (
            ProductMapping.objects.select_related("product")
            .filter(platform_id=platform_id, platform_sku=sku, is_active=True)
            .order_by("id")
            .first()
        )
        if mapping:
            return mapping.product
        return Product.objects.filter(internal_sku=sku).first()

    def find_products_by_sku(self, platform_id: int, sku: str) -> list[ResolvedProduct]:
        """
        Every active mapping for a platform SKU, so a single SKU (a bundle) can
        fan out to several local products. Falls back to the internal SKU.
        """
        resolved = self.find_mapped_products(platform_id, sku)
        if resolved or not sku:
            return resolved

        product = Product.objects.filter(internal_sku=sku).first()
        return [ResolvedProduct(product=product)] if product else []

    def find_mapped_products(self, platform_id: int, sku: str) -> list[ResolvedProduct]:
        """Active mappings only, without the internal SKU fallback."""
        if not sku:
            return []
        mappings = ProductMapping.objects.select_related("product").filter(platform_id=platform_id, platform_sku=sku, is_active=True).order_by("id")
        return [ResolvedProduct(product=m.product, multiplier=m.quantity, via="mapping") for m in mappings]

    def find_product_by_listing(self, platform_id: int, listing_id: str, variation_id: Optional[int] = None) -> Optional[Product]:
        """
        Looks up the product bound to a marketplace listing. For multi-variant
        listings the variation id selects the product; a binding without
        variation acts as the listing-wide default.
        """
        if not listing_id:
            return None
        bindings = SecondarySku.objects.select_related("product").filter(platform_id=platform_id, secondary_sku=listing_id)
        if variation_id:
            binding = bindings.filter(variation_id=variation_id).first()
            if binding:
                return binding.product
        binding = bindings.filter(variation_id__isnull=True).first()
        return binding.product if binding else None

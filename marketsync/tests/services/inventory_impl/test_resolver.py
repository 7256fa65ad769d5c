import pytest

from marketsync.services.inventory_impl import ProductResolver
from marketsync.tests.factories import PlatformFactory, ProductFactory, ProductMappingFactory, SecondarySkuFactory

pytestmark = pytest.mark.django_db


@pytest.fixture
def resolver():
    return ProductResolver()


@pytest.fixture
def platform():
    return PlatformFactory()


def test_mapping_wins_over_internal_sku(resolver, platform):
    direct = ProductFactory(internal_sku="ABC-1")
    mapped = ProductFactory(internal_sku="XYZ-9")
    ProductMappingFactory(platform=platform, platform_sku="ABC-1", product=mapped)

    assert resolver.find_product_by_sku(platform.id, "ABC-1") == mapped
    assert direct != mapped


def test_falls_back_to_internal_sku(resolver, platform):
    product = ProductFactory(internal_sku="ABC-1")

    assert resolver.find_product_by_sku(platform.id, "ABC-1") == product


def test_inactive_mapping_is_ignored(resolver, platform):
    product = ProductFactory(internal_sku="OTHER")
    ProductMappingFactory(platform=platform, platform_sku="ABC-1", product=product, is_active=False)

    assert resolver.find_product_by_sku(platform.id, "ABC-1") is None


def test_empty_sku_resolves_nothing(resolver, platform):
    assert resolver.find_product_by_sku(platform.id, "") is None
    assert resolver.find_products_by_sku(platform.id, "") == []


def test_bundle_fans_out_with_multipliers(resolver, platform):
    mouse = ProductFactory()
    keyboard = ProductFactory()
    ProductMappingFactory(platform=platform, platform_sku="COMBO", product=mouse, quantity=1)
    ProductMappingFactory(platform=platform, platform_sku="COMBO", product=keyboard, quantity=2)

    resolved = resolver.find_products_by_sku(platform.id, "COMBO")

    assert [(r.product, r.multiplier, r.via) for r in resolved] == [(mouse, 1, "mapping"), (keyboard, 2, "mapping")]


def test_mappings_are_scoped_to_their_platform(resolver, platform):
    other = PlatformFactory(code="falabella")
    ProductMappingFactory(platform=other, platform_sku="ABC-1")

    assert resolver.find_mapped_products(platform.id, "ABC-1") == []


def test_listing_lookup_prefers_variation(resolver, platform):
    default = SecondarySkuFactory(platform=platform, secondary_sku="MLC1", variation_id=None)
    variant = SecondarySkuFactory(platform=platform, secondary_sku="MLC1", variation_id=77)

    assert resolver.find_product_by_listing(platform.id, "MLC1", 77) == variant.product
    assert resolver.find_product_by_listing(platform.id, "MLC1", 78) == default.product
    assert resolver.find_product_by_listing(platform.id, "MLC1") == default.product
    assert resolver.find_product_by_listing(platform.id, "MLC2") is None

from .ledger import InventoryLedger, StockChangeMetadata
from .mapping_service import ProductMappingService
from .resolver import ProductResolver, ResolvedProduct

__all__ = [
    "InventoryLedger",
    "ProductMappingService",
    "ProductResolver",
    "ResolvedProduct",
    "StockChangeMetadata",
]

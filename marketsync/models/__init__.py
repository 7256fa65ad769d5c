from .fazt import FaztConfiguration, MonthlyFlexCost
from .inventory import PendingSale, ProductAudit, ProductHistory
from .mercadolibre_token import MercadoLibreToken
from .order import LogisticType, MarketplaceUser, Order, OrderItem, Payment
from .product import Category, Platform, Product, ProductMapping, SecondarySku

__all__ = [
    "Category",
    "FaztConfiguration",
    "LogisticType",
    "MarketplaceUser",
    "MercadoLibreToken",
    "MonthlyFlexCost",
    "Order",
    "OrderItem",
    "Payment",
    "PendingSale",
    "Platform",
    "Product",
    "ProductAudit",
    "ProductHistory",
    "ProductMapping",
    "SecondarySku",
]

from .auth_service import MercadoLibreAuthService
from .client import MercadoLibreClient, MercadoLibreConfig
from .orders_api import MercadoLibreOrdersAPI, RefreshBudget

__all__ = [
    "MercadoLibreAuthService",
    "MercadoLibreClient",
    "MercadoLibreConfig",
    "MercadoLibreOrdersAPI",
    "RefreshBudget",
]

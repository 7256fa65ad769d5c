from .service import PendingSaleService, tracking_activation_datetime

__all__ = ["PendingSaleService", "tracking_activation_datetime"]

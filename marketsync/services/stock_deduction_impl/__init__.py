from .audit import AuditRecorder
from .reconciliation import AuditSummary, ReconciliationService
from .schemas import FalabellaNotification, FalabellaOrderItem
from .service import DeductionResult, LineOutcome, SaleLine, StockDeductionService

__all__ = [
    "AuditRecorder",
    "AuditSummary",
    "DeductionResult",
    "FalabellaNotification",
    "FalabellaOrderItem",
    "LineOutcome",
    "ReconciliationService",
    "SaleLine",
    "StockDeductionService",
]

from .billing import MarketplaceFeeExtractor
from .classifier import ShipmentClassification, ShipmentCostClassifier

__all__ = [
    "MarketplaceFeeExtractor",
    "ShipmentClassification",
    "ShipmentCostClassifier",
]

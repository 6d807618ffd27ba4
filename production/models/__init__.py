# production/models/__init__.py

from .material import ProductionMaterial
from .order import ProductionOrder
from .stage import ProductionStage

__all__ = [
    "ProductionOrder",
    "ProductionMaterial",
    "ProductionStage",
]

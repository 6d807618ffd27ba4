from .warehouse import Warehouse
from .item import InventoryItem
from .stock_movement import StockMovement

__all__ = ["Warehouse", "InventoryItem", "StockMovement"]

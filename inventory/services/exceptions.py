# inventory/services/exceptions.py

"""
INVENTORY SERVICE ERRORS
"""

from core.exceptions import InvalidStateError


class InsufficientStockError(InvalidStateError):
    """Raised when a reservation or outward movement exceeds available stock."""

    default_message = "Insufficient stock available"
    error_code = "insufficient_stock"


class InactiveItemError(InvalidStateError):
    """Raised when stock is moved on a deactivated item."""

    default_message = "Inventory item is inactive"
    error_code = "inactive_item"

# purchases/services/lifecycle.py

from core.lifecycle import Lifecycle
from purchases.models import PurchaseOrder

Status = PurchaseOrder.Status

ALLOWED_TRANSITIONS = {
    Status.DRAFT: {Status.SENT, Status.CANCELLED},
    Status.SENT: {Status.ACKNOWLEDGED, Status.CANCELLED},
    Status.ACKNOWLEDGED: {Status.PARTIALLY_RECEIVED, Status.RECEIVED, Status.CANCELLED},
    Status.PARTIALLY_RECEIVED: {Status.RECEIVED, Status.CANCELLED},
}

TERMINAL_STATES = frozenset({Status.RECEIVED, Status.CANCELLED})

PURCHASE_ORDER_LIFECYCLE = Lifecycle(
    label="Purchase order",
    transitions=ALLOWED_TRANSITIONS,
    terminal_states=TERMINAL_STATES,
)

# status -> timestamp field stamped when the order enters it
STATUS_TIMESTAMPS = {
    Status.SENT: "sent_at",
    Status.ACKNOWLEDGED: "acknowledged_at",
    Status.PARTIALLY_RECEIVED: "first_receipt_at",
    Status.RECEIVED: "fully_received_at",
    Status.CANCELLED: "cancelled_at",
}

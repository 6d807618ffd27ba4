# production/services/lifecycle.py

"""
PRODUCTION ORDER STATUS RULES

draft -> approved -> in_progress -> completed
                                 -> partially_completed -> completed
Any non-terminal state may go on hold or be cancelled.
completed and cancelled are terminal.
"""

from core.lifecycle import Lifecycle
from production.models import ProductionOrder

Status = ProductionOrder.Status

ALLOWED_TRANSITIONS = {
    Status.DRAFT: {Status.APPROVED, Status.ON_HOLD, Status.CANCELLED},
    Status.APPROVED: {Status.IN_PROGRESS, Status.ON_HOLD, Status.CANCELLED},
    Status.IN_PROGRESS: {
        Status.COMPLETED,
        Status.PARTIALLY_COMPLETED,
        Status.ON_HOLD,
        Status.CANCELLED,
    },
    Status.ON_HOLD: {Status.APPROVED, Status.IN_PROGRESS, Status.CANCELLED},
    Status.PARTIALLY_COMPLETED: {Status.COMPLETED, Status.CANCELLED},
}

TERMINAL_STATES = frozenset({Status.COMPLETED, Status.CANCELLED})

PRODUCTION_LIFECYCLE = Lifecycle(
    label="Production order",
    transitions=ALLOWED_TRANSITIONS,
    terminal_states=TERMINAL_STATES,
)

# visitors/services/lifecycle.py

from core.lifecycle import Lifecycle
from visitors.models import Visitor

S = Visitor.Status
A = Visitor.ApprovalStatus

VISIT_LIFECYCLE = Lifecycle(
    label="Visitor",
    transitions={
        S.SCHEDULED: {S.CHECKED_IN, S.CANCELLED},
        S.CHECKED_IN: {S.CHECKED_OUT},
    },
    terminal_states=frozenset({S.CHECKED_OUT, S.CANCELLED}),
)

APPROVAL_LIFECYCLE = Lifecycle(
    label="Visitor approval",
    transitions={A.PENDING: {A.APPROVED, A.REJECTED}},
    terminal_states=frozenset({A.APPROVED, A.REJECTED}),
    status_field="approval_status",
)

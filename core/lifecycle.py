# core/lifecycle.py

"""
STATUS LIFECYCLE RULES (shared shape)

Each document type declares its own allow-list:

    ALLOWED_TRANSITIONS = {from_status: {to_status, ...}}
    TERMINAL_STATES = {...}

and wraps it in a Lifecycle. Services call validate() before persisting a
new status; an illegal move raises InvalidTransitionError (400).

DESIGN PRINCIPLES:
- No database writes
- No side effects
"""

from __future__ import annotations

from dataclasses import dataclass, field

from core.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Lifecycle:
    label: str
    transitions: dict
    terminal_states: frozenset = field(default_factory=frozenset)
    status_field: str = "status"

    def can_transition(self, *, from_status: str, to_status: str) -> bool:
        if from_status in self.terminal_states:
            return False
        return to_status in self.transitions.get(from_status, set())

    def allowed_from(self, status: str) -> set:
        if status in self.terminal_states:
            return set()
        return set(self.transitions.get(status, set()))

    def validate(self, document, target_status: str) -> None:
        current = getattr(document, self.status_field)
        if not self.can_transition(from_status=current, to_status=target_status):
            raise InvalidTransitionError(
                f"{self.label} cannot transition from '{current}' to '{target_status}'",
                details={
                    "from": current,
                    "to": target_status,
                    "allowed": sorted(self.allowed_from(current)),
                },
            )

"""Meeting status transitions.

Stages never write ``status`` directly; they go through :func:`transition`
(enforced by ``cicero.db.update_status``) so an illegal move such as
``complete -> processing`` is rejected instead of silently applied.
"""

from cicero.schemas.meeting import MeetingStatus

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"processing", "pending"}),
    "processing": frozenset({"processing", "complete", "failed", "pending"}),
    "complete": frozenset({"pending"}),
    "failed": frozenset({"pending"}),
}


class InvalidTransitionError(ValueError):
    """Raised when a status change is not a legal lifecycle move."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move meeting from '{current}' to '{target}'")
        self.current = current
        self.target = target


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition(current: str, target: MeetingStatus) -> MeetingStatus:
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)
    return target

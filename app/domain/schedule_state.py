"""Schedule approval state machine.

States: pending → approved → cancelled. Schedules are never deleted; a
rejected schedule is cancelled.
"""

from app.core.exceptions import ValidationError

SCHEDULE_PENDING = "pending"
SCHEDULE_APPROVED = "approved"
SCHEDULE_CANCELLED = "cancelled"

SCHEDULE_TRANSITIONS: dict[str, set[str]] = {
    SCHEDULE_PENDING: {SCHEDULE_APPROVED, SCHEDULE_CANCELLED},
    SCHEDULE_APPROVED: {SCHEDULE_CANCELLED},
    SCHEDULE_CANCELLED: set(),  # Terminal state
}

REJECTION_REASON = "Schedule rejected by admin"


def assert_schedule_transition(current: str, target: str) -> None:
    """Validate schedule state transition."""
    allowed = SCHEDULE_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise ValidationError(f"Invalid schedule transition: {current} → {target}")

"""Duty booking state machine.

States: pending_approval → confirmed → completed, with cancelled reachable
from both live states. Whether a live booking is pending or confirmed mirrors
the parent schedule's approval status and is written when that status changes.
"""

from app.core.exceptions import InvalidBookingStatus

PENDING_APPROVAL = "pending_approval"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
COMPLETED = "completed"

BOOKING_TRANSITIONS: dict[str, set[str]] = {
    PENDING_APPROVAL: {CONFIRMED, CANCELLED, COMPLETED},
    CONFIRMED: {CANCELLED, COMPLETED},
    CANCELLED: set(),
    COMPLETED: set(),
}

# Statuses that hold a capacity slot
ACTIVE_BOOKING_STATUSES = frozenset({PENDING_APPROVAL, CONFIRMED, COMPLETED})

# Statuses a schedule-level cascade may still move
LIVE_BOOKING_STATUSES = frozenset({PENDING_APPROVAL, CONFIRMED})


def assert_booking_transition(current: str, target: str) -> None:
    allowed = BOOKING_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidBookingStatus(
            f"Invalid booking transition: {current} → {target}"
        )


def is_active(status: str) -> bool:
    return status in ACTIVE_BOOKING_STATUSES


def status_for_schedule(schedule_status: str) -> str:
    """Initial status of a new booking given its schedule's approval status."""
    return CONFIRMED if schedule_status == "approved" else PENDING_APPROVAL

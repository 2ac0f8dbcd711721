"""Append-only enforcement for the duty audit trail using SQLAlchemy events."""

import logging
from datetime import UTC, datetime

from sqlalchemy import event

from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_registered = False


class ImmutabilityViolationError(ValidationError):
    """Raised when attempting to modify an append-only record."""

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}. "
            "Audit records are append-only."
        )


def _log_immutability_violation(model_name: str, operation: str, record_id: str) -> None:
    """Log immutability violation for audit purposes."""
    logger.error(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={record_id} at {datetime.now(UTC).isoformat()}"
    )


def register_immutability_enforcement() -> None:
    """Register SQLAlchemy event listeners that make DutyLog append-only.

    Safe to call more than once; listeners are attached a single time.
    """
    global _registered
    if _registered:
        return

    from app.models.admin import DutyLog

    @event.listens_for(DutyLog, "before_update")
    def prevent_duty_log_update(mapper, connection, target):
        """Prevent updates to DutyLog (append-only)."""
        _log_immutability_violation("DutyLog", "UPDATE", str(target.id))
        raise ImmutabilityViolationError("DutyLog", "UPDATE", str(target.id))

    @event.listens_for(DutyLog, "before_delete")
    def prevent_duty_log_delete(mapper, connection, target):
        """Prevent deletion of DutyLog (append-only)."""
        _log_immutability_violation("DutyLog", "DELETE", str(target.id))
        raise ImmutabilityViolationError("DutyLog", "DELETE", str(target.id))

    _registered = True
    logger.info("Immutability enforcement registered for duty logs")

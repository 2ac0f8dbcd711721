"""Database models."""

from app.models.admin import DutyLog
from app.models.notification import Notification
from app.models.schedule import DutyBooking, RebookingBlock, Schedule
from app.models.user import Profile

__all__ = [
    # User
    "Profile",
    # Scheduling
    "Schedule",
    "DutyBooking",
    "RebookingBlock",
    # Notifications
    "Notification",
    # Admin
    "DutyLog",
]

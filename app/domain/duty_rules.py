"""Calendar-day rules for duty cancellation and booking.

All comparisons are by calendar date in the program's timezone; the time of
day never matters.
"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from app.config import settings


def local_today(tz_name: str | None = None) -> date:
    """Today's calendar date in the program timezone."""
    return datetime.now(ZoneInfo(tz_name or settings.program_timezone)).date()


def as_calendar_date(value: date | datetime) -> date:
    """Truncate a datetime to its calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def can_cancel_duty(duty_date: date | datetime, today: date | None = None) -> bool:
    """Students cannot cancel on the actual day of their duty.

    Past and future duty dates are both cancellable.
    """
    today = today or local_today()
    return as_calendar_date(duty_date) != today


def is_past_duty(duty_date: date | datetime, today: date | None = None) -> bool:
    today = today or local_today()
    return as_calendar_date(duty_date) < today

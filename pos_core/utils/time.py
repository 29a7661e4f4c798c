"""Business calendar helpers."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from pos_core.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def business_date(now: datetime | None = None) -> date:
    """Return the calendar day an instant belongs to at the outlets' UTC offset.

    Order numbering restarts on this day boundary, not on UTC midnight.
    """
    moment = now or utcnow()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment.astimezone(timezone.utc) + timedelta(hours=settings.business_utc_offset_hours)).date()

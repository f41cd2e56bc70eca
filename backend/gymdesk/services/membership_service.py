"""
Membership status evaluation.

A customer's status is derived from ``is_active``, ``expire_date`` and the
current time; the stored ``is_active`` flag is only a hint and never keeps a
customer with a past expiry date active. A customer without an expiry date is
treated as expired.

Expiry dates are usually whole days (stored as midnight UTC), so a membership
stays valid for the whole of its expiry day: it only counts as expired once
that day has passed.
"""
from datetime import datetime, timedelta
from typing import Optional

from gymdesk.core.config import settings
from gymdesk.core.validators import to_naive_utc
from gymdesk.models.customer import MembershipStatusEnum


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def expiring_soon_window(now: Optional[datetime] = None, horizon_days: Optional[int] = None):
    """
    Return ``(today, horizon_end)`` as naive UTC datetimes.

    ``today`` is midnight of the current day; expiries before it are expired.
    ``horizon_end`` is ``now + horizon_days``; expiries after it are active.
    """
    now = to_naive_utc(now) if now is not None else datetime.utcnow()
    if horizon_days is None:
        horizon_days = settings.EXPIRING_SOON_DAYS
    return start_of_day(now), now + timedelta(days=horizon_days)


def membership_status(
    customer,
    now: Optional[datetime] = None,
    horizon_days: Optional[int] = None,
) -> MembershipStatusEnum:
    """
    Classify a customer as active, expiring soon or expired.

    Args:
        customer: anything with ``is_active`` and ``expire_date`` attributes
        now: reference time, defaults to the current UTC time
        horizon_days: size of the expiring-soon window, defaults to
            ``settings.EXPIRING_SOON_DAYS``
    """
    today, horizon_end = expiring_soon_window(now, horizon_days)

    expire_date = customer.expire_date
    if expire_date is None:
        return MembershipStatusEnum.EXPIRED
    expire_date = to_naive_utc(expire_date)

    if not customer.is_active or expire_date < today:
        return MembershipStatusEnum.EXPIRED
    if expire_date <= horizon_end:
        return MembershipStatusEnum.EXPIRING_SOON
    return MembershipStatusEnum.ACTIVE

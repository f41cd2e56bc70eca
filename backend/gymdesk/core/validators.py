"""
Reusable validators for request values.

All of them raise ``ValidationError`` with a message naming the field, so
callers can validate every input before touching the database.
"""
import enum
import math
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Type, TypeVar

from gymdesk.core.exceptions import ValidationError

E = TypeVar("E", bound=enum.Enum)

# Money columns are Numeric(10, 2)
MAX_AMOUNT = Decimal("100000000")
CENTS = Decimal("0.01")


def to_naive_utc(value: datetime) -> datetime:
    """Drop tzinfo after converting to UTC; naive values are assumed UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_date(
    value: Any,
    field: str = "date",
    required: bool = True,
    end_of_day: bool = False,
) -> Optional[datetime]:
    """
    Parse an ISO date or datetime into a naive UTC datetime.

    Date-only input ("2025-03-01") becomes midnight of that day, or the last
    microsecond of that day when ``end_of_day`` is set.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None

    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        parsed = datetime.combine(value, time.min)
        return parsed + timedelta(days=1, microseconds=-1) if end_of_day else parsed
    if not isinstance(value, str):
        raise ValidationError(f"Invalid {field} format")

    raw = value.strip()
    try:
        if "T" in raw or " " in raw:
            return to_naive_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
        parsed = datetime.combine(date.fromisoformat(raw), time.min)
    except ValueError:
        raise ValidationError(f"Invalid {field} format: {raw!r}")
    return parsed + timedelta(days=1, microseconds=-1) if end_of_day else parsed


def parse_amount(value: Any, field: str = "amount", required: bool = True) -> Optional[Decimal]:
    """Parse a finite, non-negative money amount into a 2-place Decimal."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a valid number")
    try:
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValidationError(f"{field} must be a finite number")
            amount = Decimal(str(value))
        else:
            amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a valid number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{field} must not be negative")
    if amount >= MAX_AMOUNT:
        raise ValidationError(f"{field} is too large")
    return amount.quantize(CENTS)


def parse_enum(enum_cls: Type[E], value: Any, field: str) -> E:
    """Case-insensitive lookup of an enum member by value."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        for member in enum_cls:
            if member.value.lower() == lowered:
                return member
    allowed = ", ".join(m.value for m in enum_cls)
    raise ValidationError(f"Invalid {field}: {value!r}. Allowed: {allowed}")


def require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()


def clean_phone(value: Optional[str]) -> Optional[str]:
    """Blank phone numbers are stored as NULL so the unique index ignores them."""
    if value is None:
        return None
    value = value.strip()
    return value or None

from datetime import datetime, timezone, date
from typing import Any, Optional

from .errors import ValidationError


def to_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, str) and value.strip():
        try:
            return to_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            pass
    raise ValidationError(f"Timestamp non valido: {value!r}")


def parse_optional_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    try:
        return parse_timestamp(value)
    except ValidationError:
        return None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def calendar_day(moment: datetime) -> date:
    return to_utc(moment).date()


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    if value < low:
        return low
    if value > high:
        return high
    return value

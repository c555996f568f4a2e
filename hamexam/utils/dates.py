"""
UTC calendar-day helpers
"""
from datetime import date, datetime, timezone
from typing import Optional, Union


def date_key(value: Optional[datetime] = None) -> str:
    """
    YYYY-MM-DD of the UTC calendar day

    Naive datetimes are taken to be UTC already.
    """
    value = value or datetime.now(timezone.utc)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date_key(key: str) -> date:
    return date.fromisoformat(key)


def difference_in_days(later: Union[str, datetime], earlier: Union[str, datetime]) -> int:
    """Whole UTC days between two timestamps or date keys"""
    later_key = later if isinstance(later, str) else date_key(later)
    earlier_key = earlier if isinstance(earlier, str) else date_key(earlier)
    return (parse_date_key(later_key) - parse_date_key(earlier_key)).days

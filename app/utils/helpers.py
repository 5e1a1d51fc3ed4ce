# app/utils/helpers.py
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Any


def utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def start_of_day(day: date) -> datetime:
    """Floor a date to 00:00:00.000 UTC"""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def start_of_next_day(day: date) -> datetime:
    """Exclusive upper bound covering every instant of the given day"""
    return start_of_day(day + timedelta(days=1))


def clean_dict(data: Dict[str, Any], remove_none: bool = True) -> Dict[str, Any]:
    """
    Drop None values from a dictionary

    Args:
        data: Dictionary to clean
        remove_none: Remove None values
    """
    if not remove_none:
        return dict(data)
    return {key: value for key, value in data.items() if value is not None}

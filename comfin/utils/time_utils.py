"""
comfin/utils/time_utils.py

Purpose: Time and expiry helpers

- OTP expiry calculation and checks
- Date-range parsing for admin filters
"""

from datetime import datetime, timedelta
from typing import Optional


def utcnow() -> datetime:
    """
    Current UTC time truncated to milliseconds, the resolution MongoDB stores.
    """
    now = datetime.utcnow()
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def calculate_otp_expiry(otp_time: datetime, validity_minutes: int = 10) -> datetime:
    """
    Calculates OTP expiry timestamp.
    """
    return otp_time + timedelta(minutes=validity_minutes)


def is_otp_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Checks if an OTP has expired. A missing expiry counts as expired.
    """
    if not expires_at:
        return True
    return (now or utcnow()) > expires_at


def parse_date(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """
    Parses an ISO date or datetime string from a query parameter.

    Args:
        value: "2024-03-31" or "2024-03-31T10:00:00"
        end_of_day: For bare dates, return 23:59:59.999 instead of midnight

    Raises:
        ValueError: If the string is not ISO formatted
    """
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if end_of_day and len(value) == 10:
        parsed = parsed.replace(hour=23, minute=59, second=59, microsecond=999000)
    return parsed

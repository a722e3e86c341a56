"""
comfin/utils/validation_utils.py

Purpose: Input validation

- PAN / PRAN format validation
- OTP format validation
- Password policy
- Input normalization
"""

import re
from typing import Optional


PAN_PATTERN = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]{1}$")
PRAN_PATTERN = re.compile(r"^[0-9]{12}$")
OTP_PATTERN = re.compile(r"^\d{6}$")

MIN_PASSWORD_LENGTH = 6


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def normalize_pan(pan: str) -> str:
    return (pan or "").strip().upper()


def validate_pan(pan: str) -> bool:
    """
    Validates PAN format.

    Format: 5 letters + 4 digits + 1 letter
    Example: ABCDE1234F

    Args:
        pan: PAN string to validate (already upper-cased)

    Returns:
        True if valid, False otherwise
    """
    if not pan:
        return False
    return bool(PAN_PATTERN.match(pan))


def validate_pran(pran: str) -> bool:
    """PRAN is a 12-digit NPS account number."""
    if not pran:
        return False
    return bool(PRAN_PATTERN.match(pran.strip()))


def validate_otp_format(otp: str) -> bool:
    """
    Validates OTP format (must be 6 digits).

    Args:
        otp: OTP string

    Returns:
        True if valid 6-digit OTP
    """
    if not otp:
        return False

    return bool(OTP_PATTERN.match(otp.strip()))


def validate_password(password: Optional[str]) -> bool:
    return bool(password) and len(password) >= MIN_PASSWORD_LENGTH


def clean_optional(value: Optional[str]) -> Optional[str]:
    """Trims a string and maps blanks to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None

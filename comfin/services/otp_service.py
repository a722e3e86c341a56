"""
comfin/services/otp_service.py

Purpose: One-time code issuance and verification

- Generates cryptographically random 6-digit codes
- Persists code + expiry on the user record
- Emails the code (delivery failure is logged, never raised)
- Verifies codes once: success consumes the code
- Discards a code after too many wrong guesses
"""

import secrets
from typing import Optional, Protocol

from comfin.core.config import Settings
from comfin.core.exceptions import ExternalServiceError
from comfin.core.logging import get_logger, LogContext
from comfin.core.security import constant_time_equals
from comfin.services.user_service import UserService
from comfin.utils.time_utils import calculate_otp_expiry, utcnow
from comfin.utils.validation_utils import normalize_email, validate_otp_format

logger = get_logger(__name__)


class OtpMailer(Protocol):
    async def send_otp_email(self, to_email: str, otp: str, validity_minutes: int) -> None:
        ...


def generate_otp() -> str:
    """
    Generates a 6-digit OTP in the range 100000-999999.
    """
    return str(100000 + secrets.randbelow(900000))


class OtpService:
    """Issues and verifies single-use codes bound to an email."""

    def __init__(self, users: UserService, mailer: OtpMailer, config: Settings):
        self._users = users
        self._mailer = mailer
        self._validity_minutes = config.OTP_EXPIRY_MINUTES
        self._max_attempts = config.OTP_MAX_ATTEMPTS

    async def generate_and_save(self, email: str) -> Optional[str]:
        """
        Issues a new code for the user and emails it.

        Args:
            email: User email

        Returns:
            The code, or None if no user has this email
        """
        email = normalize_email(email)
        code = generate_otp()
        expires_at = calculate_otp_expiry(utcnow(), self._validity_minutes)

        with LogContext(email=email):
            stored = await self._users.save_otp(email, code, expires_at)
            if not stored:
                logger.info("OTP requested for unknown email")
                return None

            try:
                await self._mailer.send_otp_email(email, code, self._validity_minutes)
                logger.info("📧 OTP sent")
            except ExternalServiceError as e:
                # The stored code stays valid without delivery
                logger.error(f"Failed to send OTP email: {e.message}")

        return code

    async def verify(self, email: str, code: str) -> bool:
        """
        Checks a code against the stored one.

        Returns False if there is no user or no pending code, and when the
        code differs, has expired, or has used up its wrong guesses. On
        success the code is cleared.
        """
        email = normalize_email(email)
        code = (code or "").strip()
        if not validate_otp_format(code):
            return False

        with LogContext(email=email):
            user = await self._users.get_by_email(email)
            if user is None or user.otp_challenge is None:
                return False

            challenge = user.otp_challenge

            if challenge.is_expired(utcnow()):
                logger.info("Rejected expired OTP")
                return False

            if challenge.attempts >= self._max_attempts:
                logger.warning("Rejected OTP, attempt limit reached")
                return False

            if not constant_time_equals(challenge.code, code):
                attempts = await self._users.record_failed_otp(email, self._max_attempts)
                logger.info(f"Rejected wrong OTP (attempt {attempts}/{self._max_attempts})")
                return False

            consumed = await self._users.consume_otp(email, code)
            if consumed:
                logger.info("✅ OTP verified")
            return consumed

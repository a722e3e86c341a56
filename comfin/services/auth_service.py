"""
comfin/services/auth_service.py

Purpose: Authentication flows

- Login dispatch between password and OTP verification
- Registration in either mode
- OTP request / verification (anti-enumeration, temp token)
- OTP toggle, password reset and password change
- Profile updates
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from comfin.core.exceptions import (
    AccessDeniedError,
    AuthMethodError,
    CredentialRequiredError,
    EmailInUseError,
    InvalidLoginError,
    InvalidOtpError,
    InvalidPasswordError,
    ValidationError,
)
from comfin.core.logging import get_logger, LogContext
from comfin.core.security import verify_password
from comfin.models.user import PasswordCredential, User
from comfin.services.otp_service import OtpService
from comfin.services.token_service import TokenService
from comfin.services.user_service import UserService
from comfin.utils.validation_utils import (
    MIN_PASSWORD_LENGTH,
    clean_optional,
    normalize_email,
    normalize_pan,
    validate_pan,
    validate_password,
)

logger = get_logger(__name__)

OTP_REQUEST_MESSAGE = "If your email is registered, you will receive an OTP"


@dataclass
class AuthResult:
    token: str
    user: User

    def to_response(self) -> Dict[str, Any]:
        return {"token": self.token, "user": self.user.summary()}


def _require_new_password(password: Optional[str], message: str) -> str:
    if not password:
        raise ValidationError(message, code="PASSWORD_REQUIRED")
    if not validate_password(password):
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


class AuthService:
    """Authentication operations over the credential store."""

    def __init__(self, users: UserService, otp: OtpService, tokens: TokenService):
        self._users = users
        self._otp = otp
        self._tokens = tokens

    async def login(
        self,
        email: str,
        password: Optional[str] = None,
        otp: Optional[str] = None,
        role: Optional[str] = None,
    ) -> AuthResult:
        """
        Authenticates with whichever credential the account's mode requires.

        Args:
            email: Login identifier
            password: Password, for password-mode accounts
            otp: One-time code, for OTP-mode accounts
            role: If given, the account must have this role

        Returns:
            AuthResult with a 5-day session token

        Raises:
            InvalidLoginError: Unknown email
            AccessDeniedError: Role filter mismatch
            AuthMethodError: Credential kind does not match the account mode
            CredentialRequiredError: No credential supplied
            InvalidOtpError / InvalidPasswordError: Credential rejected
        """
        email = normalize_email(email)
        password = password or None
        otp = (otp or "").strip() or None

        with LogContext(email=email):
            user = await self._users.get_by_email(email)
            if user is None:
                logger.info("Login failed: user not found")
                raise InvalidLoginError()

            if role and user.role.value != role:
                logger.warning(f"Login failed: role mismatch (requested {role}, has {user.role.value})")
                raise AccessDeniedError()

            if user.uses_otp:
                if password and not otp:
                    raise AuthMethodError("otp")
                if not otp:
                    raise CredentialRequiredError("otp")
                if not await self._otp.verify(email, otp):
                    logger.info("Login failed: OTP rejected")
                    raise InvalidOtpError()
            else:
                if otp and not password:
                    raise AuthMethodError("password")
                if not password:
                    raise CredentialRequiredError("password")
                if not self._check_password(user, password):
                    logger.info("Login failed: wrong password")
                    raise InvalidPasswordError()

            logger.info(f"✅ Login successful ({'otp' if user.uses_otp else 'password'})")

        return AuthResult(token=self._tokens.issue_session_token(user), user=user)

    async def register(
        self,
        name: str,
        email: str,
        password: Optional[str] = None,
        use_otp: bool = False,
    ) -> AuthResult:
        """
        Creates a user account and signs it in.

        OTP accounts are sent their first code immediately.
        """
        if not name or not name.strip():
            raise ValidationError("Name is required")
        if not use_otp:
            _require_new_password(password, "Password is required when not using OTP authentication")

        user = await self._users.create_user(name=name, email=email, password=password, use_otp=use_otp)

        if use_otp:
            await self._otp.generate_and_save(user.email)

        return AuthResult(token=self._tokens.issue_session_token(user), user=user)

    async def request_otp(self, email: str) -> str:
        """
        Issues a code if the email is registered.

        The returned message is identical either way.
        """
        await self._otp.generate_and_save(email)
        return OTP_REQUEST_MESSAGE

    async def verify_otp(self, email: str, otp: str) -> str:
        """
        Verifies a code outside of login and returns a temporary token.

        Raises:
            InvalidOtpError: If the code is wrong, expired or reused
        """
        if not await self._otp.verify(email, otp):
            raise InvalidOtpError()

        user = await self._users.get_by_email(email)
        if user is None:
            raise InvalidOtpError()

        return self._tokens.issue_temp_token(user)

    async def toggle_otp(self, user: User, password: Optional[str] = None, temp: bool = False) -> User:
        """
        Flips the account between password and OTP mode.

        With a temporary token the call instead sets a new password and
        leaves the account in password mode.
        """
        with LogContext(user_id=user.id):
            if temp:
                return await self.reset_password(user, password)

            if not user.uses_otp:
                updated = await self._users.enable_otp(user.id)
                await self._otp.generate_and_save(updated.email)
                logger.info("OTP authentication enabled")
                return updated

            new_password = _require_new_password(password, "Password is required when disabling OTP")
            updated = await self._users.set_password(user.id, new_password)
            logger.info("OTP authentication disabled")
            return updated

    async def reset_password(self, user: User, password: Optional[str]) -> User:
        """Sets a new password after a verified OTP; forces password mode."""
        new_password = _require_new_password(password, "New password is required")
        updated = await self._users.set_password(user.id, new_password)
        with LogContext(user_id=user.id):
            logger.info("Password reset via verified OTP")
        return updated

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not current_password or not new_password:
            raise ValidationError("Please provide all required fields")
        if not isinstance(user.credential, PasswordCredential):
            raise AuthMethodError("otp", "This account uses OTP authentication and has no password")
        if not self._check_password(user, current_password):
            raise InvalidPasswordError("Current password is incorrect")

        _require_new_password(new_password, "New password is required")
        await self._users.set_password(user.id, new_password)
        with LogContext(user_id=user.id):
            logger.info("Password changed")

    async def update_profile(
        self,
        user: User,
        name: Optional[str] = None,
        email: Optional[str] = None,
        pan: Optional[str] = None,
        mobile: Optional[str] = None,
    ) -> User:
        fields: Dict[str, Any] = {}

        if clean_optional(name):
            fields["name"] = name.strip()
        if clean_optional(email):
            fields["email"] = email
        if clean_optional(pan):
            pan = normalize_pan(pan)
            if not validate_pan(pan):
                raise ValidationError("Invalid PAN format", code="INVALID_PAN")
            fields["pan"] = pan
        if clean_optional(mobile):
            fields["mobile"] = mobile.strip()

        try:
            return await self._users.update_profile(user.id, fields)
        except EmailInUseError:
            logger.info("Profile update rejected, email in use")
            raise

    @staticmethod
    def _check_password(user: User, password: str) -> bool:
        credential = user.credential
        if not isinstance(credential, PasswordCredential):
            return False
        return verify_password(password, credential.password_hash)

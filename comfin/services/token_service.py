"""
comfin/services/token_service.py

Purpose: Session token issuance

- Signs session tokens carrying {user: {id, role}} (5 days)
- Signs temporary reset tokens marked temp=true (15 minutes)
- Decodes bearer tokens into TokenClaims
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Any

from comfin.core.config import Settings
from comfin.core.exceptions import AuthenticationError
from comfin.core.logging import get_logger
from comfin.core.security import JWTError, encode_token, decode_token
from comfin.models.user import User

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified bearer token."""
    user_id: str
    role: str
    temp: bool = False


class TokenService:
    """Issues and verifies signed bearer tokens."""

    def __init__(self, config: Settings):
        self._secret = config.JWT_SECRET
        self._algorithm = config.JWT_ALGORITHM
        self._session_ttl = timedelta(days=config.ACCESS_TOKEN_EXPIRE_DAYS)
        self._temp_ttl = timedelta(minutes=config.TEMP_TOKEN_EXPIRE_MINUTES)

    def issue_session_token(self, user: User) -> str:
        payload = {"user": {"id": user.id, "role": user.role.value}}
        return encode_token(payload, self._secret, self._algorithm, self._session_ttl)

    def issue_temp_token(self, user: User) -> str:
        """Short-lived token proving a fresh OTP verification."""
        payload = {"user": {"id": user.id, "role": user.role.value, "temp": True}}
        return encode_token(payload, self._secret, self._algorithm, self._temp_ttl)

    def decode(self, token: str) -> TokenClaims:
        """
        Verifies a bearer token.

        Args:
            token: Raw JWT string

        Returns:
            TokenClaims for the embedded user

        Raises:
            AuthenticationError: If the token is invalid, expired or malformed
        """
        try:
            payload: Dict[str, Any] = decode_token(token, self._secret, self._algorithm)
        except JWTError as e:
            logger.info(f"Rejected bearer token: {e}")
            raise AuthenticationError("Token is not valid")

        user = payload.get("user")
        if not isinstance(user, dict) or not user.get("id") or not user.get("role"):
            raise AuthenticationError("Token is not valid")

        return TokenClaims(
            user_id=str(user["id"]),
            role=str(user["role"]),
            temp=bool(user.get("temp", False)),
        )

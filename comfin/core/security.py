from datetime import datetime, timedelta
from typing import Dict, Any
from jose import JWTError, jwt
import bcrypt
import hmac


def _password_bytes(password: str) -> bytes:
    # Bcrypt has a 72 byte limit
    return password.encode("utf-8")[:72]


def get_password_hash(password: str, rounds: int = 10) -> str:
    """Hash password with the configured bcrypt cost"""
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against a bcrypt hash"""
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


def constant_time_equals(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def encode_token(payload: Dict[str, Any], secret: str, algorithm: str, expires_delta: timedelta) -> str:
    """Sign a JWT carrying payload and an expiry"""
    now = datetime.utcnow()
    to_encode = payload.copy()
    to_encode.update({"iat": now, "exp": now + expires_delta})
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_token(token: str, secret: str, algorithm: str) -> Dict[str, Any]:
    """
    Decode and verify a JWT.

    Raises:
        JWTError: If the signature is invalid or the token has expired
    """
    return jwt.decode(token, secret, algorithms=[algorithm])


__all__ = [
    "JWTError",
    "get_password_hash",
    "verify_password",
    "constant_time_equals",
    "encode_token",
    "decode_token",
]

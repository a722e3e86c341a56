"""
comfin/api/deps.py

Purpose: FastAPI dependencies

- Builds services from the objects the application owns (app.state)
- Resolves the bearer token into the current user
- Session tokens everywhere; temp tokens only where a reset is allowed
- Admin role guard
"""

from typing import Optional, Tuple

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from comfin.core.config import Settings
from comfin.core.exceptions import AccessDeniedError, AuthenticationError
from comfin.core.logging import get_logger
from comfin.db.mongo import MongoDatabase
from comfin.models.user import User
from comfin.services.auth_service import AuthService
from comfin.services.contact_service import ContactService
from comfin.services.otp_service import OtpService
from comfin.services.tax_form_service import TaxFormService
from comfin.services.token_service import TokenClaims, TokenService
from comfin.services.user_service import UserService

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> MongoDatabase:
    return request.app.state.db


def get_token_service(config: Settings = Depends(get_settings)) -> TokenService:
    return TokenService(config)


def get_user_service(
    db: MongoDatabase = Depends(get_db),
    config: Settings = Depends(get_settings),
) -> UserService:
    return UserService(db, config)


def get_otp_service(
    request: Request,
    users: UserService = Depends(get_user_service),
    config: Settings = Depends(get_settings),
) -> OtpService:
    return OtpService(users, request.app.state.mailer, config)


def get_auth_service(
    users: UserService = Depends(get_user_service),
    otp: OtpService = Depends(get_otp_service),
    tokens: TokenService = Depends(get_token_service),
) -> AuthService:
    return AuthService(users, otp, tokens)


def get_tax_form_service(
    db: MongoDatabase = Depends(get_db),
    config: Settings = Depends(get_settings),
) -> TaxFormService:
    return TaxFormService(db, config)


def get_contact_service(db: MongoDatabase = Depends(get_db)) -> ContactService:
    return ContactService(db)


def get_optional_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[TokenClaims]:
    """Claims of the bearer token, or None when no token was sent."""
    if credentials is None:
        return None
    return tokens.decode(credentials.credentials)


def get_claims(claims: Optional[TokenClaims] = Depends(get_optional_claims)) -> TokenClaims:
    if claims is None:
        raise AuthenticationError("No token, authorization denied")
    return claims


async def _load_user(claims: TokenClaims, users: UserService) -> User:
    user = await users.get_by_id(claims.user_id)
    if user is None:
        logger.info("Bearer token refers to a deleted user")
        raise AuthenticationError("Token is not valid")
    return user


async def get_current_user(
    claims: TokenClaims = Depends(get_claims),
    users: UserService = Depends(get_user_service),
) -> User:
    """
    The signed-in user. Temporary reset tokens are refused here.
    """
    if claims.temp:
        raise AuthenticationError("Temporary token cannot be used for this action")
    return await _load_user(claims, users)


async def get_optional_user(
    claims: Optional[TokenClaims] = Depends(get_optional_claims),
    users: UserService = Depends(get_user_service),
) -> Optional[User]:
    """The signed-in user if a session token was sent, else None."""
    if claims is None:
        return None
    if claims.temp:
        raise AuthenticationError("Temporary token cannot be used for this action")
    return await _load_user(claims, users)


async def get_user_allow_temp(
    claims: TokenClaims = Depends(get_claims),
    users: UserService = Depends(get_user_service),
) -> Tuple[User, bool]:
    """(user, is_temp) for endpoints that accept either token kind."""
    return await _load_user(claims, users), claims.temp


async def require_temp_token(
    claims: TokenClaims = Depends(get_claims),
    users: UserService = Depends(get_user_service),
) -> User:
    """The user behind a temporary reset token; session tokens are refused."""
    if not claims.temp:
        raise AuthenticationError("A verified OTP reset token is required")
    return await _load_user(claims, users)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise AccessDeniedError("Access denied. Admin only.")
    return user

"""
comfin/services/user_service.py

Purpose: User data management (credential store)

- Create user records
- Look up users by email or id
- Persist, consume and invalidate one-time codes
- Switch an account between password and OTP mode
- Profile updates with email uniqueness
"""

from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from comfin.core.config import Settings
from comfin.core.exceptions import EmailInUseError, ResourceNotFoundError
from comfin.core.logging import get_logger, LogContext
from comfin.core.security import get_password_hash
from comfin.db.mongo import MongoDatabase
from comfin.models.user import Role, User
from comfin.utils.time_utils import utcnow
from comfin.utils.validation_utils import normalize_email

logger = get_logger(__name__)

# Fields cleared whenever a code is consumed or the account leaves OTP mode
OTP_FIELDS = {"otp": "", "otpExpiry": "", "otpAttempts": ""}


def to_object_id(value: str) -> Optional[ObjectId]:
    if not value or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


class UserService:
    """Reads and writes the `users` collection."""

    def __init__(self, db: MongoDatabase, config: Settings):
        self._users = db.users
        self._bcrypt_rounds = config.BCRYPT_ROUNDS

    async def get_by_email(self, email: str) -> Optional[User]:
        doc = await self._users.find_one({"email": normalize_email(email)})
        return User.from_document(doc) if doc else None

    async def get_by_id(self, user_id: str) -> Optional[User]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        doc = await self._users.find_one({"_id": oid})
        return User.from_document(doc) if doc else None

    async def create_user(
        self,
        name: str,
        email: str,
        password: Optional[str] = None,
        use_otp: bool = False,
        role: Role = Role.USER,
    ) -> User:
        """
        Inserts a new user.

        Args:
            name: Display name
            email: Login identifier, stored lower-cased
            password: Plain password; ignored for OTP accounts
            use_otp: Create the account in OTP mode
            role: Account role

        Returns:
            The stored user

        Raises:
            EmailInUseError: If the email is already registered
        """
        email = normalize_email(email)
        now = utcnow()
        doc: Dict[str, Any] = {
            "name": name.strip(),
            "email": email,
            "role": role.value,
            "useOTP": bool(use_otp),
            "createdAt": now,
            "updatedAt": now,
        }
        if not use_otp:
            doc["password"] = get_password_hash(password or "", rounds=self._bcrypt_rounds)

        with LogContext(email=email):
            try:
                result = await self._users.insert_one(doc)
            except DuplicateKeyError:
                logger.info("Registration rejected, email already registered")
                raise EmailInUseError()

            doc["_id"] = result.inserted_id
            logger.info(f"✅ Created {role.value} account (useOTP={bool(use_otp)})")

        return User.from_document(doc)

    async def save_otp(self, email: str, code: str, expires_at: datetime) -> bool:
        """
        Stores a fresh code on the user, replacing any previous one.

        Returns:
            True if a user with this email exists
        """
        result = await self._users.update_one(
            {"email": normalize_email(email)},
            {"$set": {"otp": code, "otpExpiry": expires_at, "otpAttempts": 0, "updatedAt": utcnow()}}
        )
        return result.matched_count > 0

    async def consume_otp(self, email: str, code: str) -> bool:
        """
        Clears the stored code if it still equals `code`.

        The code is part of the filter, so of two concurrent verifications
        only one can clear it.
        """
        result = await self._users.update_one(
            {"email": normalize_email(email), "otp": code},
            {"$unset": OTP_FIELDS, "$set": {"updatedAt": utcnow()}}
        )
        return result.modified_count > 0

    async def record_failed_otp(self, email: str, max_attempts: int) -> int:
        """
        Counts a wrong guess; discards the code once max_attempts is reached.

        Returns:
            Attempts recorded against the current code
        """
        email = normalize_email(email)
        doc = await self._users.find_one_and_update(
            {"email": email, "otp": {"$exists": True}},
            {"$inc": {"otpAttempts": 1}},
            return_document=ReturnDocument.AFTER
        )
        attempts = (doc or {}).get("otpAttempts", 0)

        if doc and attempts >= max_attempts:
            await self.clear_otp(email)
            logger.warning(f"OTP discarded after {attempts} failed attempts")

        return attempts

    async def clear_otp(self, email: str) -> None:
        await self._users.update_one(
            {"email": normalize_email(email)},
            {"$unset": OTP_FIELDS}
        )

    async def set_password(self, user_id: str, password: str) -> User:
        """
        Puts the account in password mode with a new password.

        Clears any OTP state.
        """
        password_hash = get_password_hash(password, rounds=self._bcrypt_rounds)
        return await self._update(
            user_id,
            {
                "$set": {"password": password_hash, "useOTP": False, "updatedAt": utcnow()},
                "$unset": OTP_FIELDS,
            }
        )

    async def enable_otp(self, user_id: str) -> User:
        """Puts the account in OTP mode and drops the password hash."""
        return await self._update(
            user_id,
            {
                "$set": {"useOTP": True, "updatedAt": utcnow()},
                "$unset": {"password": ""},
            }
        )

    async def update_profile(self, user_id: str, fields: Dict[str, Any]) -> User:
        """
        Updates profile fields (name, email, pan, mobile).

        Raises:
            EmailInUseError: If the new email belongs to another account
            ResourceNotFoundError: If the user no longer exists
        """
        if "email" in fields:
            fields["email"] = normalize_email(fields["email"])
            existing = await self._users.find_one({"email": fields["email"]})
            if existing and str(existing["_id"]) != user_id:
                raise EmailInUseError("Email already in use")

        if not fields:
            user = await self.get_by_id(user_id)
            if user is None:
                raise ResourceNotFoundError("User not found")
            return user

        fields["updatedAt"] = utcnow()
        try:
            return await self._update(user_id, {"$set": fields})
        except DuplicateKeyError:
            raise EmailInUseError("Email already in use")

    async def _update(self, user_id: str, update: Dict[str, Any]) -> User:
        oid = to_object_id(user_id)
        doc = None
        if oid is not None:
            doc = await self._users.find_one_and_update(
                {"_id": oid},
                update,
                return_document=ReturnDocument.AFTER
            )
        if not doc:
            raise ResourceNotFoundError("User not found")
        return User.from_document(doc)

"""
comfin/models/user.py

Purpose: User document model

- Identity and profile fields (email, name, role, PAN, mobile)
- Credential as a tagged union: password hash XOR OTP mode
- Pending one-time code (login code for OTP accounts, reset code for
  password accounts)
- Conversion from the flat Mongo document
- Public views that never expose credential material
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field

from comfin.utils.time_utils import is_otp_expired


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class PasswordCredential(BaseModel):
    """Account authenticates with a bcrypt-hashed password."""
    kind: Literal["password"] = "password"
    password_hash: str = ""


class OtpCredential(BaseModel):
    """Account authenticates with emailed one-time codes only."""
    kind: Literal["otp"] = "otp"


Credential = Annotated[Union[PasswordCredential, OtpCredential], Field(discriminator="kind")]


class OtpChallenge(BaseModel):
    """
    A code that was issued and not yet consumed.

    attempts counts wrong guesses against this code.
    """
    code: str
    expires_at: datetime
    attempts: int = 0

    def is_expired(self, now: datetime) -> bool:
        return is_otp_expired(self.expires_at, now)


class User(BaseModel):
    id: str
    email: str
    name: str
    role: Role = Role.USER
    credential: Credential
    otp_challenge: Optional[OtpChallenge] = None
    pan: Optional[str] = None
    mobile: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def uses_otp(self) -> bool:
        return isinstance(self.credential, OtpCredential)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "User":
        """
        Builds a User from a `users` collection document.

        The stored `useOTP` flag selects the credential branch; a stored
        password hash is ignored for OTP accounts.
        """
        if doc.get("useOTP"):
            credential: Union[PasswordCredential, OtpCredential] = OtpCredential()
        else:
            credential = PasswordCredential(password_hash=doc.get("password") or "")

        challenge = None
        if doc.get("otp") and doc.get("otpExpiry"):
            challenge = OtpChallenge(
                code=doc["otp"],
                expires_at=doc["otpExpiry"],
                attempts=doc.get("otpAttempts") or 0,
            )

        return cls(
            id=str(doc["_id"]),
            email=doc["email"],
            name=doc.get("name", ""),
            role=Role(doc.get("role", Role.USER.value)),
            credential=credential,
            otp_challenge=challenge,
            pan=doc.get("pan"),
            mobile=doc.get("mobile"),
            created_at=doc.get("createdAt"),
            updated_at=doc.get("updatedAt"),
        )

    def summary(self) -> Dict[str, Any]:
        """Shape returned alongside tokens by login and register."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "useOTP": self.uses_otp,
        }

    def to_public(self) -> Dict[str, Any]:
        """Full profile without password or OTP material."""
        data = self.summary()
        data.update({
            "pan": self.pan,
            "mobile": self.mobile,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        })
        return data

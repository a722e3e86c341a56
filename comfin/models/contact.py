"""
comfin/models/contact.py

Purpose: Contact-form message model
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class ContactMessage(BaseModel):
    id: str
    name: str
    email: str
    message: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ContactMessage":
        return cls(
            id=str(doc["_id"]),
            name=doc["name"],
            email=doc["email"],
            message=doc["message"],
            created_at=doc.get("createdAt"),
        )

    def to_public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "message": self.message,
            "createdAt": self.created_at,
        }

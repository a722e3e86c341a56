"""
comfin/services/contact_service.py

Purpose: Contact-form messages

- Store messages from the public contact form
- Paginated admin listing, newest first
"""

from typing import List, Tuple

from pymongo import DESCENDING

from comfin.core.exceptions import ValidationError
from comfin.core.logging import get_logger
from comfin.db.mongo import MongoDatabase
from comfin.models.contact import ContactMessage
from comfin.schemas.response import Pagination
from comfin.utils.time_utils import utcnow
from comfin.utils.validation_utils import clean_optional, normalize_email

logger = get_logger(__name__)


class ContactService:
    """Reads and writes the `contacts` collection."""

    def __init__(self, db: MongoDatabase):
        self._contacts = db.contacts

    async def submit(self, name: str, email: str, message: str) -> ContactMessage:
        name = clean_optional(name)
        email = normalize_email(email)
        message = clean_optional(message)

        if not name or not email or not message:
            raise ValidationError("All fields are required")

        doc = {"name": name, "email": email, "message": message, "createdAt": utcnow()}
        result = await self._contacts.insert_one(doc)
        doc["_id"] = result.inserted_id

        logger.info(f"📨 Contact message received ({len(message)} chars)")
        return ContactMessage.from_document(doc)

    async def list(self, page: int = 1, limit: int = 10) -> Tuple[List[ContactMessage], Pagination]:
        cursor = (
            self._contacts.find({})
            .sort("createdAt", DESCENDING)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        messages = [ContactMessage.from_document(doc) async for doc in cursor]
        total = await self._contacts.count_documents({})

        return messages, Pagination.build(total=total, page=page, limit=limit)

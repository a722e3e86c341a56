"""
comfin/db/indexes.py

Purpose: Database index management

- Unique index on user email
- Lookup indexes for the admin submission filters
- Idempotent: safe to run on every startup
"""

from pymongo import ASCENDING, DESCENDING

from comfin.db.mongo import MongoDatabase
from comfin.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes(db: MongoDatabase):
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        logger.info("Creating database indexes...")

        # ==============================================
        # USERS COLLECTION INDEXES
        # ==============================================

        await db.users.create_index([("email", ASCENDING)], unique=True, name="email_unique")
        logger.debug("Created unique index on users.email")

        # ==============================================
        # TAX FORMS COLLECTION INDEXES
        # ==============================================

        await db.tax_forms.create_index([("pan", ASCENDING)], name="pan_idx")
        await db.tax_forms.create_index([("status", ASCENDING)], name="status_idx")
        await db.tax_forms.create_index([("createdAt", DESCENDING)], name="created_at_idx")
        await db.tax_forms.create_index([("userId", ASCENDING)], name="user_id_idx")
        await db.tax_forms.create_index([("documents.id", ASCENDING)], name="document_id_idx")
        logger.debug("Created indexes on tax_forms")

        # ==============================================
        # CONTACTS COLLECTION INDEXES
        # ==============================================

        await db.contacts.create_index([("createdAt", DESCENDING)], name="contact_created_idx")
        logger.debug("Created index on contacts.createdAt")

        logger.info("✅ All database indexes created successfully")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise

"""
comfin/services/tax_form_service.py

Purpose: Tax filing submissions

- Validates and stores submissions with their uploaded documents
- Lets applicants list and view their own submissions
- Admin listing with filters and pagination
- Admin status updates (Pending / Reviewed / Filed)
- Document download with ownership checks
"""

import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Dict, List, Optional, Tuple

import bson
from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.common import MAX_BSON_SIZE

from comfin.core.config import Settings
from comfin.core.exceptions import AccessDeniedError, ResourceNotFoundError, ValidationError
from comfin.core.logging import get_logger, LogContext
from comfin.db.mongo import MongoDatabase
from comfin.models.tax_form import DocumentRecord, DocumentType, FormStatus, TaxForm
from comfin.models.user import User
from comfin.schemas.forms import TaxFormSubmission
from comfin.schemas.response import Pagination
from comfin.services.user_service import to_object_id
from comfin.utils.time_utils import utcnow
from comfin.utils.validation_utils import (
    clean_optional,
    normalize_email,
    normalize_pan,
    validate_pan,
    validate_pran,
)

logger = get_logger(__name__)

# File bytes stay in the database unless a document is downloaded
WITHOUT_FILE_DATA = {"documents.fileData": 0}

BYTES_PER_MB = 1024 * 1024


def file_too_large_error(document_type: DocumentType, limit: int) -> ValidationError:
    return ValidationError(
        f"File too large. Maximum size is {limit // BYTES_PER_MB}MB.",
        code="FILE_TOO_LARGE",
        details={"documentType": document_type.value, "maxBytes": limit}
    )


def submission_too_large_error(limit: int) -> ValidationError:
    return ValidationError(
        f"Documents too large. Combined maximum is {limit // BYTES_PER_MB}MB.",
        code="SUBMISSION_TOO_LARGE",
        details={"maxBytes": limit}
    )


@dataclass
class UploadedDocument:
    document_type: DocumentType
    original_name: str
    content_type: str
    data: bytes


@dataclass
class StoredDocument:
    record: DocumentRecord
    data: bytes
    form_user_id: Optional[str]


class TaxFormService:
    """Reads and writes the `tax_forms` collection."""

    def __init__(self, db: MongoDatabase, config: Settings):
        self._forms = db.tax_forms
        self._max_upload_bytes = config.MAX_UPLOAD_BYTES
        self._max_submission_bytes = config.MAX_SUBMISSION_BYTES

    async def submit(
        self,
        submission: TaxFormSubmission,
        documents: List[UploadedDocument],
        user: Optional[User] = None,
    ) -> TaxForm:
        """
        Validates and stores a tax filing submission.

        Args:
            submission: Applicant fields
            documents: At most one upload per document type
            user: Authenticated submitter, if any

        Returns:
            The stored submission (status Pending)

        Raises:
            ValidationError: Missing/invalid fields or oversized uploads
        """
        doc = self._build_document(submission)
        doc["documents"] = self._build_file_records(documents)
        doc["userId"] = user.id if user else None

        now = utcnow()
        doc["status"] = FormStatus.PENDING.value
        doc["createdAt"] = now
        doc["updatedAt"] = now

        # _id is added on insert
        if len(bson.encode(doc)) > MAX_BSON_SIZE - 1024:
            raise submission_too_large_error(self._max_submission_bytes)

        result = await self._forms.insert_one(doc)
        doc["_id"] = result.inserted_id

        with LogContext(form_id=str(result.inserted_id)):
            logger.info(f"📄 Tax form submitted with {len(doc['documents'])} document(s)")

        return TaxForm.from_document(doc)

    def _build_document(self, submission: TaxFormSubmission) -> Dict[str, Any]:
        full_name = clean_optional(submission.fullName)
        email = normalize_email(submission.email)
        phone = clean_optional(submission.phone)
        pan = normalize_pan(submission.pan)

        if not full_name or not email or not phone or not pan:
            raise ValidationError("All required fields must be provided")

        if not validate_pan(pan):
            raise ValidationError("Invalid PAN format", code="INVALID_PAN")

        login_id = clean_optional(submission.incomeTaxLoginId)
        if submission.hasIncomeTaxLogin and not login_id:
            raise ValidationError("Income tax login credentials are required")

        loan_amount = clean_optional(submission.homeLoanAmount)
        if submission.hasHomeLoan and not loan_amount:
            raise ValidationError("Home loan amount is required")

        pran = clean_optional(submission.pranNumber)
        if submission.hasPranNumber and not pran:
            raise ValidationError("PRAN number is required")
        if submission.hasPranNumber and not validate_pran(pran):
            raise ValidationError("PRAN must be 12 digits", code="INVALID_PRAN")

        doc: Dict[str, Any] = {
            "fullName": full_name,
            "email": email,
            "phone": phone,
            "pan": pan,
            "hasIncomeTaxLogin": submission.hasIncomeTaxLogin,
            "hasHomeLoan": submission.hasHomeLoan,
            "hasPranNumber": submission.hasPranNumber,
        }

        if submission.hasIncomeTaxLogin:
            doc["incomeTaxLoginId"] = login_id
            doc["incomeTaxLoginPassword"] = clean_optional(submission.incomeTaxLoginPassword)

        if submission.hasHomeLoan:
            doc["homeLoanSanctionDate"] = clean_optional(submission.homeLoanSanctionDate)
            doc["homeLoanAmount"] = loan_amount
            doc["homeLoanCurrentDue"] = clean_optional(submission.homeLoanCurrentDue)
            doc["homeLoanTotalInterest"] = clean_optional(submission.homeLoanTotalInterest)

        if submission.hasPranNumber:
            doc["pranNumber"] = pran

        return doc

    def _build_file_records(self, documents: List[UploadedDocument]) -> List[Dict[str, Any]]:
        records = []
        seen = set()
        total = 0
        timestamp = int(utcnow().timestamp() * 1000)

        for upload in documents:
            if upload.document_type in seen:
                raise ValidationError(f"Only one {upload.document_type.value} document is allowed")
            seen.add(upload.document_type)

            size = len(upload.data)
            if size > self._max_upload_bytes:
                raise file_too_large_error(upload.document_type, self._max_upload_bytes)

            total += size
            if total > self._max_submission_bytes:
                raise submission_too_large_error(self._max_submission_bytes)

            document_id = ObjectId()
            suffix = PurePath(upload.original_name).suffix.lower()
            records.append({
                "id": str(document_id),
                "documentType": upload.document_type.value,
                "fileName": f"{upload.document_type.value}-{timestamp}-{document_id}{suffix}",
                "originalName": upload.original_name,
                "fileType": upload.content_type or "application/octet-stream",
                "fileSize": size,
                "fileData": upload.data,
            })

        return records

    async def list_for_user(self, user: User) -> List[TaxForm]:
        """Submissions made while signed in to this account, newest first."""
        cursor = self._forms.find(self._owner_filter(user), WITHOUT_FILE_DATA).sort("createdAt", DESCENDING)
        return [TaxForm.from_document(doc) async for doc in cursor]

    async def get_for_user(self, user: User, form_id: str) -> TaxForm:
        oid = to_object_id(form_id)
        doc = None
        if oid is not None:
            query = {"$and": [{"_id": oid}, self._owner_filter(user)]}
            doc = await self._forms.find_one(query, WITHOUT_FILE_DATA)
        if not doc:
            raise ResourceNotFoundError("Form not found")
        return TaxForm.from_document(doc)

    async def list_forms(
        self,
        pan: Optional[str] = None,
        name: Optional[str] = None,
        status: Optional[FormStatus] = None,
        start_date=None,
        end_date=None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[TaxForm], Pagination]:
        """
        Admin listing of submissions.

        Args:
            pan: Case-insensitive PAN substring
            name: Case-insensitive applicant name substring
            status: Exact status
            start_date / end_date: Inclusive createdAt bounds
            page: 1-based page number
            limit: Page size

        Returns:
            (forms, pagination)
        """
        query: Dict[str, Any] = {}
        if pan:
            query["pan"] = {"$regex": re.escape(pan), "$options": "i"}
        if name:
            query["fullName"] = {"$regex": re.escape(name), "$options": "i"}
        if status:
            query["status"] = status.value
        if start_date or end_date:
            query["createdAt"] = {}
            if start_date:
                query["createdAt"]["$gte"] = start_date
            if end_date:
                query["createdAt"]["$lte"] = end_date

        skip = (page - 1) * limit
        cursor = (
            self._forms.find(query, WITHOUT_FILE_DATA)
            .sort("createdAt", DESCENDING)
            .skip(skip)
            .limit(limit)
        )
        forms = [TaxForm.from_document(doc) async for doc in cursor]
        total = await self._forms.count_documents(query)

        return forms, Pagination.build(total=total, page=page, limit=limit)

    async def get_form(self, form_id: str) -> TaxForm:
        oid = to_object_id(form_id)
        doc = await self._forms.find_one({"_id": oid}, WITHOUT_FILE_DATA) if oid else None
        if not doc:
            raise ResourceNotFoundError("Form not found")
        return TaxForm.from_document(doc)

    async def update_status(self, form_id: str, status: str) -> TaxForm:
        """
        Sets the review status of a submission.

        Raises:
            ValidationError: Unknown status value
            ResourceNotFoundError: Unknown form id
        """
        try:
            new_status = FormStatus(status)
        except ValueError:
            raise ValidationError("Invalid status", code="INVALID_STATUS")

        oid = to_object_id(form_id)
        doc = None
        if oid is not None:
            doc = await self._forms.find_one_and_update(
                {"_id": oid},
                {"$set": {"status": new_status.value, "updatedAt": utcnow()}},
                projection=WITHOUT_FILE_DATA,
                return_document=ReturnDocument.AFTER
            )
        if not doc:
            raise ResourceNotFoundError("Form not found")

        with LogContext(form_id=form_id):
            logger.info(f"Form status updated to {new_status.value}")

        return TaxForm.from_document(doc)

    async def get_document(self, document_id: str, user: User) -> StoredDocument:
        """
        Loads an uploaded document with its bytes.

        Admins may read any document; other users only documents on
        submissions they made while signed in.

        Raises:
            ResourceNotFoundError: Unknown document id
            AccessDeniedError: Document belongs to someone else
        """
        doc = await self._forms.find_one({"documents.id": document_id})
        if not doc:
            raise ResourceNotFoundError("Document not found")

        raw = next(d for d in doc["documents"] if d["id"] == document_id)
        stored = StoredDocument(
            record=DocumentRecord.from_document(raw),
            data=bytes(raw["fileData"]),
            form_user_id=doc.get("userId"),
        )

        if not user.is_admin and stored.form_user_id != user.id:
            raise AccessDeniedError()

        return stored

    @staticmethod
    def _owner_filter(user: User) -> Dict[str, Any]:
        return {"userId": user.id}

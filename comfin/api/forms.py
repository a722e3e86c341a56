"""
comfin/api/forms.py

Form API Endpoints
==================

- Tax filing submission (multipart: fields + one file per document type)
- Contact form
- The signed-in user's submissions and document downloads
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response

from comfin.api.deps import (
    get_contact_service,
    get_current_user,
    get_optional_user,
    get_settings,
    get_tax_form_service,
)
from comfin.core.config import Settings
from comfin.models.tax_form import DocumentType
from comfin.models.user import User
from comfin.schemas.forms import ContactRequest, TaxFormSubmission
from comfin.services.contact_service import ContactService
from comfin.services.tax_form_service import (
    TaxFormService,
    UploadedDocument,
    file_too_large_error,
    submission_too_large_error,
)

router = APIRouter(prefix="/forms", tags=["Forms"])

UPLOAD_CHUNK_BYTES = 64 * 1024


async def read_uploads(
    files: Dict[DocumentType, Optional[UploadFile]],
    max_file_bytes: int,
    max_total_bytes: int,
) -> List[UploadedDocument]:
    """
    Reads the posted files into memory, stopping as soon as a limit is passed.

    A declared size over the limit is refused before anything is read;
    otherwise at most one chunk past the limit is read.

    Raises:
        ValidationError: FILE_TOO_LARGE or SUBMISSION_TOO_LARGE
    """
    uploads = []
    total = 0
    for document_type, upload in files.items():
        if upload is None or not upload.filename:
            continue

        if upload.size is not None:
            if upload.size > max_file_bytes:
                raise file_too_large_error(document_type, max_file_bytes)
            if total + upload.size > max_total_bytes:
                raise submission_too_large_error(max_total_bytes)

        chunks = []
        size = 0
        while True:
            chunk = await upload.read(UPLOAD_CHUNK_BYTES)
            if not chunk:
                break
            size += len(chunk)
            if size > max_file_bytes:
                raise file_too_large_error(document_type, max_file_bytes)
            if total + size > max_total_bytes:
                raise submission_too_large_error(max_total_bytes)
            chunks.append(chunk)

        total += size
        uploads.append(UploadedDocument(
            document_type=document_type,
            original_name=upload.filename,
            content_type=upload.content_type,
            data=b"".join(chunks),
        ))
    return uploads


@router.post("/tax", status_code=201)
async def submit_tax_form(
    fullName: str = Form(""),
    email: str = Form(""),
    phone: str = Form(""),
    pan: str = Form(""),
    hasIncomeTaxLogin: bool = Form(False),
    incomeTaxLoginId: Optional[str] = Form(None),
    incomeTaxLoginPassword: Optional[str] = Form(None),
    hasHomeLoan: bool = Form(False),
    homeLoanSanctionDate: Optional[str] = Form(None),
    homeLoanAmount: Optional[str] = Form(None),
    homeLoanCurrentDue: Optional[str] = Form(None),
    homeLoanTotalInterest: Optional[str] = Form(None),
    hasPRAN: bool = Form(False),
    pranNumber: Optional[str] = Form(None),
    form16: Optional[UploadFile] = File(None),
    bankStatements: Optional[UploadFile] = File(None),
    investmentProof: Optional[UploadFile] = File(None),
    tradingSummary: Optional[UploadFile] = File(None),
    homeLoanCertificate: Optional[UploadFile] = File(None),
    salarySlip: Optional[UploadFile] = File(None),
    aadharCard: Optional[UploadFile] = File(None),
    otherDocument: Optional[UploadFile] = File(None),
    user: Optional[User] = Depends(get_optional_user),
    forms: TaxFormService = Depends(get_tax_form_service),
    config: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """
    Submit a tax filing form with documents.

    Public; when a session token is sent the submission is linked to
    that account.
    """
    submission = TaxFormSubmission(
        fullName=fullName,
        email=email,
        phone=phone,
        pan=pan,
        hasIncomeTaxLogin=hasIncomeTaxLogin,
        incomeTaxLoginId=incomeTaxLoginId,
        incomeTaxLoginPassword=incomeTaxLoginPassword,
        hasHomeLoan=hasHomeLoan,
        homeLoanSanctionDate=homeLoanSanctionDate,
        homeLoanAmount=homeLoanAmount,
        homeLoanCurrentDue=homeLoanCurrentDue,
        homeLoanTotalInterest=homeLoanTotalInterest,
        hasPranNumber=hasPRAN,
        pranNumber=pranNumber,
    )

    documents = await read_uploads(
        {
            DocumentType.FORM16: form16,
            DocumentType.BANK_STATEMENT: bankStatements,
            DocumentType.INVESTMENT_PROOF: investmentProof,
            DocumentType.TRADING_SUMMARY: tradingSummary,
            DocumentType.HOME_LOAN_CERTIFICATE: homeLoanCertificate,
            DocumentType.SALARY_SLIP: salarySlip,
            DocumentType.AADHAR_CARD: aadharCard,
            DocumentType.OTHER: otherDocument,
        },
        max_file_bytes=config.MAX_UPLOAD_BYTES,
        max_total_bytes=config.MAX_SUBMISSION_BYTES,
    )

    form = await forms.submit(submission, documents, user=user)
    return {
        "success": True,
        "message": "Tax form submitted successfully",
        "formId": form.id,
    }


@router.post("/contact", status_code=201)
async def submit_contact(
    request: ContactRequest,
    contacts: ContactService = Depends(get_contact_service),
) -> Dict[str, Any]:
    await contacts.submit(request.name, request.email, request.message)
    return {"success": True, "message": "Contact form submitted successfully"}


@router.get("/my-submissions")
async def my_submissions(
    user: User = Depends(get_current_user),
    forms: TaxFormService = Depends(get_tax_form_service),
) -> Dict[str, Any]:
    submissions = await forms.list_for_user(user)
    return {"forms": [f.to_public() for f in submissions]}


@router.get("/my-submissions/{form_id}")
async def my_submission(
    form_id: str,
    user: User = Depends(get_current_user),
    forms: TaxFormService = Depends(get_tax_form_service),
) -> Dict[str, Any]:
    form = await forms.get_for_user(user, form_id)
    return form.to_public()


@router.get("/download/{document_id}")
async def download_document(
    document_id: str,
    user: User = Depends(get_current_user),
    forms: TaxFormService = Depends(get_tax_form_service),
) -> Response:
    """Stream an uploaded document back to its owner or an admin."""
    stored = await forms.get_document(document_id, user)
    record = stored.record
    return Response(
        content=stored.data,
        media_type=record.file_type,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(record.original_name)}",
        },
    )

"""
comfin/models/tax_form.py

Purpose: Tax filing submission model

- Applicant details and conditional sections (IT login, home loan, PRAN)
- Uploaded document records (bytes kept out of public views)
- Review status lifecycle: Pending -> Reviewed -> Filed
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class FormStatus(str, Enum):
    PENDING = "Pending"
    REVIEWED = "Reviewed"
    FILED = "Filed"


class DocumentType(str, Enum):
    FORM16 = "form16"
    BANK_STATEMENT = "bankStatement"
    INVESTMENT_PROOF = "investmentProof"
    TRADING_SUMMARY = "tradingSummary"
    HOME_LOAN_CERTIFICATE = "homeLoanCertificate"
    SALARY_SLIP = "salarySlip"
    AADHAR_CARD = "aadharCard"
    OTHER = "other"


class DocumentRecord(BaseModel):
    id: str
    document_type: DocumentType
    file_name: str
    original_name: str
    file_type: str
    file_size: int

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "DocumentRecord":
        return cls(
            id=str(doc["id"]),
            document_type=DocumentType(doc["documentType"]),
            file_name=doc["fileName"],
            original_name=doc["originalName"],
            file_type=doc["fileType"],
            file_size=int(doc["fileSize"]),
        )

    def to_public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "documentType": self.document_type.value,
            "fileName": self.file_name,
            "originalName": self.original_name,
            "fileType": self.file_type,
            "fileSize": self.file_size,
        }


class TaxForm(BaseModel):
    id: str
    full_name: str
    email: str
    phone: str
    pan: str
    has_income_tax_login: bool = False
    income_tax_login_id: Optional[str] = None
    has_home_loan: bool = False
    home_loan_sanction_date: Optional[str] = None
    home_loan_amount: Optional[str] = None
    home_loan_current_due: Optional[str] = None
    home_loan_total_interest: Optional[str] = None
    has_pran_number: bool = False
    pran_number: Optional[str] = None
    user_id: Optional[str] = None
    documents: List[DocumentRecord] = []
    status: FormStatus = FormStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "TaxForm":
        return cls(
            id=str(doc["_id"]),
            full_name=doc["fullName"],
            email=doc["email"],
            phone=doc["phone"],
            pan=doc["pan"],
            has_income_tax_login=bool(doc.get("hasIncomeTaxLogin")),
            income_tax_login_id=doc.get("incomeTaxLoginId"),
            has_home_loan=bool(doc.get("hasHomeLoan")),
            home_loan_sanction_date=doc.get("homeLoanSanctionDate"),
            home_loan_amount=doc.get("homeLoanAmount"),
            home_loan_current_due=doc.get("homeLoanCurrentDue"),
            home_loan_total_interest=doc.get("homeLoanTotalInterest"),
            has_pran_number=bool(doc.get("hasPranNumber")),
            pran_number=doc.get("pranNumber"),
            user_id=doc.get("userId"),
            documents=[DocumentRecord.from_document(d) for d in doc.get("documents", [])],
            status=FormStatus(doc.get("status", FormStatus.PENDING.value)),
            created_at=doc.get("createdAt"),
            updated_at=doc.get("updatedAt"),
        )

    def to_public(self) -> Dict[str, Any]:
        """
        Response shape for listings and detail views.

        The stored income-tax portal password is never echoed back.
        """
        return {
            "id": self.id,
            "fullName": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "pan": self.pan,
            "hasIncomeTaxLogin": self.has_income_tax_login,
            "incomeTaxLoginId": self.income_tax_login_id,
            "hasHomeLoan": self.has_home_loan,
            "homeLoanSanctionDate": self.home_loan_sanction_date,
            "homeLoanAmount": self.home_loan_amount,
            "homeLoanCurrentDue": self.home_loan_current_due,
            "homeLoanTotalInterest": self.home_loan_total_interest,
            "hasPranNumber": self.has_pran_number,
            "pranNumber": self.pran_number,
            "documents": [d.to_public() for d in self.documents],
            "status": self.status.value,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

"""
comfin/schemas/forms.py

Pydantic models for tax-form and contact submissions and admin actions.
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class TaxFormSubmission(BaseModel):
    """
    Applicant fields of a tax filing submission.

    Built from multipart form fields; the uploaded files travel separately.
    Conditional fields are checked by TaxFormService, not here, so that the
    client gets the same VALIDATION_ERROR shape for every business rule.
    """

    fullName: str = Field(..., description="Applicant name")
    email: str = Field(..., description="Contact email")
    phone: str = Field(..., description="Contact phone")
    pan: str = Field(..., description="PAN, e.g. ABCDE1234F")

    hasIncomeTaxLogin: bool = False
    incomeTaxLoginId: Optional[str] = None
    incomeTaxLoginPassword: Optional[str] = None

    hasHomeLoan: bool = False
    homeLoanSanctionDate: Optional[str] = None
    homeLoanAmount: Optional[str] = None
    homeLoanCurrentDue: Optional[str] = None
    homeLoanTotalInterest: Optional[str] = None

    hasPranNumber: bool = False
    pranNumber: Optional[str] = None


class ContactRequest(BaseModel):
    name: str = Field(..., description="Sender name")
    email: EmailStr = Field(..., description="Reply-to email")
    message: str = Field(..., description="Message body")


class StatusUpdateRequest(BaseModel):
    """Status is checked against FormStatus by the service (INVALID_STATUS)."""

    status: str = Field(..., description="Pending, Reviewed or Filed")

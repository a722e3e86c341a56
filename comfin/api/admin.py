"""
comfin/api/admin.py

Admin API Endpoints
===================

Review workflow for tax filing submissions and the contact inbox.
Every route requires a session token for an account with role "admin".
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from comfin.api.deps import get_contact_service, get_tax_form_service, require_admin
from comfin.core.exceptions import ValidationError
from comfin.core.logging import LogContext
from comfin.models.tax_form import FormStatus
from comfin.models.user import User
from comfin.schemas.forms import StatusUpdateRequest
from comfin.services.contact_service import ContactService
from comfin.services.tax_form_service import TaxFormService
from comfin.utils.time_utils import parse_date

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


def _parse_status(value: Optional[str]) -> Optional[FormStatus]:
    if not value:
        return None
    try:
        return FormStatus(value)
    except ValueError:
        raise ValidationError("Invalid status", code="INVALID_STATUS")


def _parse_date_param(name: str, value: Optional[str], end_of_day: bool = False):
    try:
        return parse_date(value, end_of_day=end_of_day)
    except ValueError:
        raise ValidationError(f"Invalid {name}, expected YYYY-MM-DD", code="INVALID_DATE")


@router.get("/forms")
async def list_forms(
    pan: Optional[str] = None,
    name: Optional[str] = None,
    status: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    forms: TaxFormService = Depends(get_tax_form_service),
) -> Dict[str, Any]:
    """
    List submissions, newest first.

    `pan` and `name` match case-insensitive substrings; `startDate` and
    `endDate` bound the submission date (inclusive).
    """
    results, pagination = await forms.list_forms(
        pan=pan,
        name=name,
        status=_parse_status(status),
        start_date=_parse_date_param("startDate", startDate),
        end_date=_parse_date_param("endDate", endDate, end_of_day=True),
        page=page,
        limit=limit,
    )
    return {"forms": [f.to_public() for f in results], "pagination": pagination.model_dump()}


@router.get("/forms/{form_id}")
async def get_form(
    form_id: str,
    forms: TaxFormService = Depends(get_tax_form_service),
) -> Dict[str, Any]:
    form = await forms.get_form(form_id)
    return form.to_public()


@router.put("/forms/{form_id}/status")
async def update_form_status(
    form_id: str,
    request: StatusUpdateRequest,
    admin: User = Depends(require_admin),
    forms: TaxFormService = Depends(get_tax_form_service),
) -> Dict[str, Any]:
    with LogContext(user_id=admin.id, role=admin.role.value):
        form = await forms.update_status(form_id, request.status)
    return form.to_public()


@router.get("/contacts")
async def list_contacts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    contacts: ContactService = Depends(get_contact_service),
) -> Dict[str, Any]:
    messages, pagination = await contacts.list(page=page, limit=limit)
    return {"contacts": [m.to_public() for m in messages], "pagination": pagination.model_dump()}

"""Invoice router - FastAPI endpoints for invoice operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Invoice, User
from ..quotes.router import line_item_responses
from ..quotes.schemas import LineItemsReplace
from .schemas import InvoiceCreate, InvoiceResponse, InvoiceStatusUpdate, InvoiceUpdate
from .service import InvoiceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invoices", tags=["Invoices"])


def get_invoice_service(db: Session = Depends(get_db)) -> InvoiceService:
    """Dependency injection for InvoiceService"""
    return InvoiceService(db)


def _to_response(i: Invoice, automations: Optional[dict] = None) -> InvoiceResponse:
    return InvoiceResponse(
        id=i.id,
        clientId=i.client_id,
        jobId=i.job_id,
        quoteId=i.quote_id,
        number=i.number,
        title=i.title,
        description=i.description,
        notes=i.notes,
        terms=i.terms,
        status=i.status,
        subtotal=i.subtotal,
        gstAmount=i.gst_amount,
        total=i.total,
        gstEnabled=i.gst_enabled,
        issueDate=i.issue_date,
        dueDate=i.due_date,
        sentAt=i.sent_at,
        paidAt=i.paid_at,
        templateId=i.template_id,
        familyKey=i.family_key,
        isRecurring=bool(i.is_recurring),
        recurrencePattern=i.recurrence_pattern,
        recurrenceInterval=i.recurrence_interval,
        recurrenceEndDate=i.recurrence_end_date,
        nextRecurrenceDate=i.next_recurrence_date,
        recurrenceStatus=i.recurrence_status,
        parentInvoiceId=i.parent_invoice_id,
        archivedAt=i.archived_at,
        lineItems=line_item_responses(i),
        created_at=i.created_at,
        automations=automations,
    )


@router.get("", response_model=list[InvoiceResponse])
async def get_invoices(
    include_archived: bool = Query(False, alias="includeArchived"),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    invoices = service.get_invoices(current_user, include_archived, status)
    return [_to_response(i) for i in invoices]


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: int,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return _to_response(service.get_invoice(invoice_id, current_user))


@router.post("", response_model=InvoiceResponse)
async def create_invoice(
    data: InvoiceCreate,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return _to_response(service.create_invoice(data, current_user))


@router.patch("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: int,
    data: InvoiceUpdate,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return _to_response(service.update_invoice(invoice_id, data, current_user))


@router.put("/{invoice_id}/line-items", response_model=InvoiceResponse)
async def replace_invoice_line_items(
    invoice_id: int,
    data: LineItemsReplace,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return _to_response(service.replace_line_items(invoice_id, data, current_user))


@router.patch("/{invoice_id}/status", response_model=InvoiceResponse)
async def update_invoice_status(
    invoice_id: int,
    data: InvoiceStatusUpdate,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Marking an invoice paid also runs payment_received automations"""
    invoice, automations = service.update_status(invoice_id, data.status, current_user)
    return _to_response(invoice, automations)


@router.post("/{invoice_id}/archive", response_model=InvoiceResponse)
async def archive_invoice(
    invoice_id: int,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return _to_response(service.archive_invoice(invoice_id, current_user))


@router.post("/{invoice_id}/unarchive", response_model=InvoiceResponse)
async def unarchive_invoice(
    invoice_id: int,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return _to_response(service.unarchive_invoice(invoice_id, current_user))


@router.post("/{invoice_id}/stop-recurring", response_model=InvoiceResponse)
async def stop_recurring_invoice(
    invoice_id: int,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return _to_response(service.stop_recurring(invoice_id, current_user))

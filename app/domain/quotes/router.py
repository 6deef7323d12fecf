"""Quote router - FastAPI endpoints for quote operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Quote, User
from .schemas import (
    LineItemResponse,
    LineItemsReplace,
    QuoteCreate,
    QuoteResponse,
    QuoteStatusUpdate,
    QuoteUpdate,
)
from .service import QuoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["Quotes"])


def get_quote_service(db: Session = Depends(get_db)) -> QuoteService:
    """Dependency injection for QuoteService"""
    return QuoteService(db)


def line_item_responses(document) -> list[LineItemResponse]:
    return [
        LineItemResponse(
            id=item.id,
            description=item.description,
            quantity=item.quantity,
            unitPrice=item.unit_price,
            total=item.total,
            sortOrder=item.sort_order,
        )
        for item in document.line_items
    ]


def _to_response(q: Quote, automations: Optional[dict] = None) -> QuoteResponse:
    return QuoteResponse(
        id=q.id,
        clientId=q.client_id,
        jobId=q.job_id,
        number=q.number,
        title=q.title,
        description=q.description,
        notes=q.notes,
        status=q.status,
        subtotal=q.subtotal,
        gstAmount=q.gst_amount,
        total=q.total,
        gstEnabled=q.gst_enabled,
        validUntil=q.valid_until,
        sentAt=q.sent_at,
        acceptedAt=q.accepted_at,
        declinedAt=q.declined_at,
        templateId=q.template_id,
        familyKey=q.family_key,
        archivedAt=q.archived_at,
        lineItems=line_item_responses(q),
        created_at=q.created_at,
        automations=automations,
    )


@router.get("", response_model=list[QuoteResponse])
async def get_quotes(
    include_archived: bool = Query(False, alias="includeArchived"),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service),
):
    return [_to_response(q) for q in service.get_quotes(current_user, include_archived, status)]


@router.get("/{quote_id}", response_model=QuoteResponse)
async def get_quote(
    quote_id: int,
    current_user: User = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service),
):
    return _to_response(service.get_quote(quote_id, current_user))


@router.post("", response_model=QuoteResponse)
async def create_quote(
    data: QuoteCreate,
    current_user: User = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service),
):
    return _to_response(service.create_quote(data, current_user))


@router.patch("/{quote_id}", response_model=QuoteResponse)
async def update_quote(
    quote_id: int,
    data: QuoteUpdate,
    current_user: User = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service),
):
    return _to_response(service.update_quote(quote_id, data, current_user))


@router.put("/{quote_id}/line-items", response_model=QuoteResponse)
async def replace_quote_line_items(
    quote_id: int,
    data: LineItemsReplace,
    current_user: User = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service),
):
    return _to_response(service.replace_line_items(quote_id, data, current_user))


@router.patch("/{quote_id}/status", response_model=QuoteResponse)
async def update_quote_status(
    quote_id: int,
    data: QuoteStatusUpdate,
    current_user: User = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service),
):
    quote, automations = service.update_status(quote_id, data.status, current_user)
    return _to_response(quote, automations)


@router.post("/{quote_id}/archive", response_model=QuoteResponse)
async def archive_quote(
    quote_id: int,
    current_user: User = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service),
):
    return _to_response(service.archive_quote(quote_id, current_user))


@router.post("/{quote_id}/unarchive", response_model=QuoteResponse)
async def unarchive_quote(
    quote_id: int,
    current_user: User = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service),
):
    return _to_response(service.unarchive_quote(quote_id, current_user))

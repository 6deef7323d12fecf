"""
Line item, GST and total calculation for quotes and invoices, plus document numbering.
"""

import logging
import secrets
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from ..config import GST_RATE
from ..shared.errors import ConflictError, ValidationError
from ..shared.money import CENT, Money

logger = logging.getLogger(__name__)

QUOTE_PREFIX = "Q"
INVOICE_PREFIX = "INV"
NUMBER_ATTEMPTS = 10


@dataclass(frozen=True)
class LineTotal:
    description: str
    quantity: Decimal
    unit_price: Money
    total: Money
    sort_order: int


@dataclass(frozen=True)
class DocumentTotals:
    line_items: tuple
    subtotal: Money
    gst_amount: Money
    total: Money


def _field(item: Any, *names: str, default=None):
    """Read a line item field from a dict, pydantic model or ORM row"""
    for name in names:
        if isinstance(item, dict):
            if name in item:
                return item[name]
        elif hasattr(item, name):
            return getattr(item, name)
    return default


def parse_quantity(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"Invalid quantity: {value!r}")
    try:
        qty = Decimal(repr(value) if isinstance(value, float) else str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid quantity: {value!r}")
    if not qty.is_finite() or qty < 0:
        raise ValidationError(f"Invalid quantity: {value!r}")
    if qty != qty.quantize(CENT):
        raise ValidationError(f"Quantity has more than 2 decimal places: {value!r}")
    return qty.quantize(CENT)


def recalculate_totals(
    line_items: Iterable[Any],
    gst_enabled: bool = True,
    gst_rate: Optional[str] = None,
) -> DocumentTotals:
    """
    Line totals are quantity x unit price rounded half-up to the cent, GST is
    rate x subtotal rounded the same way, and total is subtotal + GST. All
    three are exact at 2 decimal places.
    """
    rate = Decimal(gst_rate or GST_RATE)

    lines = []
    subtotal = Money.zero()
    for index, item in enumerate(line_items):
        description = _field(item, "description")
        if not description or not str(description).strip():
            raise ValidationError(f"Line item {index + 1} needs a description")

        quantity = parse_quantity(_field(item, "quantity", default=1))
        unit_price = Money.parse(_field(item, "unitPrice", "unit_price", default=0))
        line_total = unit_price.multiply(quantity)
        sort_order = _field(item, "sortOrder", "sort_order")

        lines.append(
            LineTotal(
                description=str(description).strip(),
                quantity=quantity,
                unit_price=unit_price,
                total=line_total,
                sort_order=index if sort_order is None else int(sort_order),
            )
        )
        subtotal = subtotal + line_total

    gst_amount = subtotal.percent(rate) if gst_enabled else Money.zero()

    return DocumentTotals(
        line_items=tuple(lines),
        subtotal=subtotal,
        gst_amount=gst_amount,
        total=subtotal + gst_amount,
    )


def apply_totals(document, totals: DocumentTotals, line_model) -> None:
    """Write totals onto a quote/invoice and replace its line items"""
    document.subtotal = totals.subtotal.to_decimal()
    document.gst_amount = totals.gst_amount.to_decimal()
    document.total = totals.total.to_decimal()
    document.line_items = [
        line_model(
            description=line.description,
            quantity=line.quantity,
            unit_price=line.unit_price.to_decimal(),
            total=line.total.to_decimal(),
            sort_order=line.sort_order,
        )
        for line in totals.line_items
    ]


def generate_document_number(db: Session, model, prefix: str) -> str:
    """Random ``PREFIX-XXXXXXXX`` number not yet used in the model's table"""
    for _ in range(NUMBER_ATTEMPTS):
        number = f"{prefix}-{secrets.token_hex(4).upper()}"
        if not db.query(model.id).filter(model.number == number).first():
            return number
        logger.debug(f"Document number collision on {number}, retrying")

    logger.error(f"❌ Could not generate a unique {prefix} number after {NUMBER_ATTEMPTS} attempts")
    raise ConflictError("Could not allocate a document number, please retry")

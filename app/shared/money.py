"""
Fixed-point money for quotes, invoices and line items.

Amounts are held as integer cents so that subtotal + GST always reconciles
with the total at the 2-decimal scale the database columns declare.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from .errors import ValidationError

CENT = Decimal("0.01")


@dataclass(frozen=True, order=True)
class Money:
    cents: int = 0

    @classmethod
    def parse(cls, value: Union["Money", Decimal, int, str, None]) -> "Money":
        """
        Build a Money from user or database input.

        Accepts Money, Decimal, int and numeric strings with at most two
        decimal places. Floats are accepted only when they carry no more
        precision than cents. Anything else raises ValidationError.
        """
        if isinstance(value, Money):
            return value
        if value is None or isinstance(value, bool):
            raise ValidationError(f"Invalid amount: {value!r}")
        if isinstance(value, float):
            value = repr(value)
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Invalid amount: {value!r}")
        if not amount.is_finite():
            raise ValidationError(f"Invalid amount: {value!r}")
        if amount != amount.quantize(CENT):
            raise ValidationError(f"Amount has more than 2 decimal places: {value!r}")
        return cls(int(amount.quantize(CENT) * 100))

    @classmethod
    def from_decimal(cls, amount: Decimal) -> "Money":
        """Round an arbitrary Decimal to the nearest cent (half-up)"""
        return cls(int(amount.quantize(CENT, rounding=ROUND_HALF_UP) * 100))

    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    def to_decimal(self) -> Decimal:
        return (Decimal(self.cents) / 100).quantize(CENT)

    def multiply(self, quantity: Union[Decimal, int, str]) -> "Money":
        """Line total for ``quantity`` units at this unit price"""
        try:
            qty = Decimal(str(quantity))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Invalid quantity: {quantity!r}")
        if not qty.is_finite():
            raise ValidationError(f"Invalid quantity: {quantity!r}")
        return Money.from_decimal(self.to_decimal() * qty)

    def percent(self, rate: Union[Decimal, str]) -> "Money":
        """``rate`` is a fraction, e.g. Decimal('0.10') for 10% GST"""
        return Money.from_decimal(self.to_decimal() * Decimal(str(rate)))

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents + other.cents)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents - other.cents)

    def __str__(self) -> str:
        return f"${self.to_decimal():,.2f}"

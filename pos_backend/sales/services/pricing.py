# sales/services/pricing.py

"""
PRICING ENGINE (PURE)

Purpose:
- Derive subtotal, discount, tax and total from cart lines, a discount
  configuration and a flat tax rate.

Rules:
    subtotal  = SUM(unit_price * quantity)
    discount  = value                     (kind = amount)
                subtotal * value / 100    (kind = percent)
    taxable   = max(0, subtotal - discount)
    tax       = taxable * tax_rate
    total     = taxable + tax

- No side effects, no caching: callers recompute on every read.
- Decimal arithmetic at full precision; rounding happens only at presentation.
- A negative discount value is treated as 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

ZERO = Decimal("0")
HUNDRED = Decimal("100")

DISCOUNT_AMOUNT = "amount"
DISCOUNT_PERCENT = "percent"
DISCOUNT_KINDS = (DISCOUNT_AMOUNT, DISCOUNT_PERCENT)


def to_decimal(value, *, field_name: str = "value") -> Decimal:
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number")
    if isinstance(value, Decimal):
        d = value
    else:
        try:
            d = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise ValueError(f"{field_name} must be a number") from exc
    # NaN / Infinity never compare cleanly against money values
    if not d.is_finite():
        raise ValueError(f"{field_name} must be a finite number")
    return d


@dataclass(frozen=True)
class DiscountConfig:
    kind: str = DISCOUNT_AMOUNT
    value: Decimal = ZERO

    def to_dict(self) -> dict:
        return {"kind": self.kind, "value": str(self.value)}

    @classmethod
    def from_dict(cls, data) -> "DiscountConfig":
        data = data or {}
        return cls(
            kind=data.get("kind") or DISCOUNT_AMOUNT,
            value=to_decimal(data.get("value")),
        )


@dataclass(frozen=True)
class PricingBreakdown:
    subtotal: Decimal
    discount: Decimal
    taxable: Decimal
    tax: Decimal
    total: Decimal


def compute_subtotal(items) -> Decimal:
    return sum(
        (to_decimal(i.unit_price) * int(i.quantity) for i in items),
        ZERO,
    )


def compute_discount(subtotal: Decimal, discount: DiscountConfig | None) -> Decimal:
    if discount is None:
        return ZERO

    value = max(ZERO, to_decimal(discount.value))

    if discount.kind == DISCOUNT_PERCENT:
        return subtotal * (value / HUNDRED)
    if discount.kind == DISCOUNT_AMOUNT:
        return value

    raise ValueError(f"Unknown discount kind: {discount.kind}")


def compute_totals(items, discount: DiscountConfig | None, tax_rate) -> PricingBreakdown:
    subtotal = compute_subtotal(items)
    discount_amount = compute_discount(subtotal, discount)

    taxable = max(ZERO, subtotal - discount_amount)
    tax = taxable * to_decimal(tax_rate, field_name="tax_rate")

    return PricingBreakdown(
        subtotal=subtotal,
        discount=discount_amount,
        taxable=taxable,
        tax=tax,
        total=taxable + tax,
    )

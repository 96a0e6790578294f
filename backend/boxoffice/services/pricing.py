from __future__ import annotations

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_UP
from typing import Literal

from boxoffice.schemas.line_items import CrossSellingLineItem, LineItem, OrganizerFeePolicy


MONEY_QUANT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

MoneyRounding = Literal["half_up", "half_even", "up", "down"]


_ROUNDING_MAP: dict[str, str] = {
    "half_up": ROUND_HALF_UP,
    "half_even": ROUND_HALF_EVEN,
    "up": ROUND_UP,
    "down": ROUND_DOWN,
}


def quantize_money(value: Decimal, *, rounding: MoneyRounding = "half_up") -> Decimal:
    mode = _ROUNDING_MAP.get(str(rounding), ROUND_HALF_UP)
    return Decimal(value).quantize(MONEY_QUANT, rounding=mode)


def extract_inclusive_vat(gross: Decimal, rate: Decimal) -> Decimal:
    """VAT contained in a VAT-inclusive amount: ``gross * rate / (100 + rate)``."""
    if rate <= 0:
        return ZERO
    return gross * rate / (HUNDRED + rate)


def ticket_system_fee(item: LineItem, policy: OrganizerFeePolicy) -> Decimal:
    """VAT-inclusive system fee embedded in a ticket line.

    A flat per-ticket amount wins over a percentage of the line price.
    """
    if item.type != "ticket":
        return ZERO
    if policy.system_fee_amount:
        return policy.system_fee_amount * item.quantity
    if policy.system_fee_percentage:
        return item.total_price * policy.system_fee_percentage / HUNDRED
    return ZERO


def cross_selling_system_fee(item: CrossSellingLineItem, quantity: int) -> Decimal:
    return (item.system_fee or ZERO) * quantity

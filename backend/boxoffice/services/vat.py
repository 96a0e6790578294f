from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from boxoffice.schemas.line_items import CrossSellingLineItem, LineItem, OrganizerFeePolicy
from boxoffice.services.discounts import DiscountedItem
from boxoffice.services.pricing import ZERO, cross_selling_system_fee, extract_inclusive_vat, ticket_system_fee


@dataclass(frozen=True)
class ItemVat:
    rate: Decimal
    amount: Decimal


def embedded_system_fee(item: LineItem, policy: OrganizerFeePolicy) -> Decimal:
    """VAT-inclusive system fee baked into the item's own price."""
    if item.type == "ticket":
        if item.exclude_system_fee:
            return ZERO
        return ticket_system_fee(item, policy)
    if item.type == "crossselling":
        return cross_selling_system_fee(item, item.quantity)
    return ZERO


def product_vat(entry: DiscountedItem, policy: OrganizerFeePolicy) -> ItemVat:
    """VAT on the product-only portion of a (possibly discounted) item.

    The embedded system fee is scaled by the same ratio as the item price
    and taken out first; its VAT is booked separately at the fee rate.
    Purchased vouchers are multi-purpose vouchers and never carry VAT.
    """
    item = entry.line_item
    if item.type == "voucher":
        return ItemVat(rate=ZERO, amount=ZERO)
    if item.type in ("ticket", "crossselling"):
        fee = embedded_system_fee(item, policy) * entry.ratio
        portion = entry.discounted_price - fee
        return ItemVat(rate=item.vat_rate, amount=extract_inclusive_vat(portion, item.vat_rate))
    return ItemVat(rate=item.vat_rate, amount=extract_inclusive_vat(entry.discounted_price, item.vat_rate))


def cross_selling_fee_vat_rate(item: CrossSellingLineItem) -> Decimal:
    if item.system_fee_vat_rate is not None:
        return item.system_fee_vat_rate
    return item.vat_rate

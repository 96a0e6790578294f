from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from boxoffice.schemas.line_items import LineItem
from boxoffice.services.pricing import ZERO


ONE = Decimal("1")


@dataclass(frozen=True)
class DiscountedItem:
    line_item: LineItem
    original_price: Decimal
    discounted_price: Decimal

    @property
    def ratio(self) -> Decimal:
        """Share of the original price left after the discount (1 for free items)."""
        if self.original_price == 0:
            return ONE
        return self.discounted_price / self.original_price


def allocate_discount(items: Sequence[LineItem], total_discount: Decimal) -> list[DiscountedItem]:
    """Spread ``total_discount`` over ``items`` weighted by their total price.

    Items are expected to be the kept portion of the basket only. An
    all-free basket cannot carry a discount and yields an empty list.
    """
    if total_discount == 0:
        return [DiscountedItem(item, item.total_price, item.total_price) for item in items]

    total_price = sum((item.total_price for item in items), start=ZERO)
    if total_price == 0:
        return []

    allocated: list[DiscountedItem] = []
    for item in items:
        share = item.total_price / total_price * total_discount
        discounted = max(ZERO, item.total_price - share)
        allocated.append(DiscountedItem(item, item.total_price, discounted))
    return allocated


def discount_ratios(discounted: Sequence[DiscountedItem]) -> dict[str, Decimal]:
    return {entry.line_item.id: entry.ratio for entry in discounted}

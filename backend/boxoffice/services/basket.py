import logging
from collections import Counter
from typing import Collection, Sequence
from uuid import uuid4

from fastapi import HTTPException, status

from boxoffice.core import metrics
from boxoffice.core.config import settings
from boxoffice.schemas.basket import BasketSnapshot
from boxoffice.schemas.line_items import CrossSellingLineItem, DeliveryOption, LineItem
from boxoffice.services import breakdown as breakdown_service

logger = logging.getLogger(__name__)


def _commit(snapshot: BasketSnapshot, event: str, **changes: object) -> BasketSnapshot:
    draft = snapshot.model_copy(update=changes)
    financial_breakdown = breakdown_service.compute_breakdown(
        draft.line_items,
        draft.fee_policy,
        draft.delivery_option,
        draft.currency,
        draft.options,
        rounding=settings.money_rounding,
    )
    updated = draft.model_copy(update={"version": snapshot.version + 1, "financial_breakdown": financial_breakdown})
    record_basket_event(event, {"version": updated.version, "items": len(updated.line_items)})
    return updated


def _find_index(line_items: Sequence[LineItem], item_id: str) -> int:
    for idx, item in enumerate(line_items):
        if item.id == item_id:
            return idx
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Line item not found")


def recalculate(snapshot: BasketSnapshot) -> BasketSnapshot:
    return _commit(snapshot, "recalculate")


def add_line_item(snapshot: BasketSnapshot, item: LineItem) -> BasketSnapshot:
    if any(existing.id == item.id for existing in snapshot.line_items):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Line item already in basket")
    return _commit(snapshot, "add_line_item", line_items=[*snapshot.line_items, item])


def remove_line_item(snapshot: BasketSnapshot, item_id: str) -> BasketSnapshot:
    """Drop a line item; add-ons bound to a removed ticket go with it."""
    idx = _find_index(snapshot.line_items, item_id)
    removed = snapshot.line_items[idx]
    remaining = [
        item
        for item in snapshot.line_items
        if item.id != item_id
        and not (removed.type == "ticket" and item.type == "crossselling" and item.ticket_line_item_id == item_id)
    ]
    return _commit(snapshot, "remove_line_item", line_items=remaining)


def set_line_items(snapshot: BasketSnapshot, line_items: Sequence[LineItem]) -> BasketSnapshot:
    return _commit(snapshot, "set_line_items", line_items=list(line_items))


def set_delivery_option(snapshot: BasketSnapshot, delivery_option: DeliveryOption | None) -> BasketSnapshot:
    return _commit(snapshot, "set_delivery_option", delivery_option=delivery_option)


def split_cross_selling_units(
    item: CrossSellingLineItem, taken_ids: Collection[str] = ()
) -> list[CrossSellingLineItem]:
    """Expand a cross-selling line into quantity-1 siblings.

    Partial refunds are expressed by flagging some siblings, never by
    lowering a quantity. The first unit keeps the original id; the others
    get the next free ``<id>-<n>`` suffix not found in ``taken_ids``.
    """
    if item.quantity == 1:
        return [item]
    used = set(taken_ids) | {item.id}
    units = [item.model_copy(update={"quantity": 1, "total_price": item.unit_price})]
    n = 1
    while len(units) < item.quantity:
        n += 1
        unit_id = f"{item.id}-{n}"
        if unit_id in used:
            continue
        used.add(unit_id)
        units.append(item.model_copy(update={"id": unit_id, "quantity": 1, "total_price": item.unit_price}))
    return units


def _refund_cross_selling(
    item: CrossSellingLineItem, quantity: int | None, taken_ids: Collection[str], *, system_fee_refunded: bool
) -> list[CrossSellingLineItem]:
    if not item.is_refundable:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Product is not refundable")
    units_to_refund = item.quantity if quantity is None else quantity
    if units_to_refund > item.quantity:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Refund quantity exceeds units held")
    units = split_cross_selling_units(item, taken_ids)
    refunded = [
        unit.model_copy(update={"refunded": True, "system_fee_refunded": system_fee_refunded})
        for unit in units[:units_to_refund]
    ]
    return [*refunded, *units[units_to_refund:]]


def refund_line_item(
    snapshot: BasketSnapshot,
    item_id: str,
    *,
    quantity: int | None = None,
    system_fee_refunded: bool = False,
) -> BasketSnapshot:
    """Flag a line item as refunded.

    ``system_fee_refunded`` marks the fee as paid back as well so later
    breakdowns do not credit it a second time.
    """
    idx = _find_index(snapshot.line_items, item_id)
    item = snapshot.line_items[idx]
    if item.refunded:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Line item already refunded")
    if quantity is not None and item.type != "crossselling":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Partial refunds apply to products only")

    replacement: list[LineItem]
    if item.type == "crossselling":
        taken_ids = [other.id for other in snapshot.line_items]
        replacement = list(_refund_cross_selling(item, quantity, taken_ids, system_fee_refunded=system_fee_refunded))
    elif item.type == "ticket":
        replacement = [item.model_copy(update={"refunded": True, "system_fee_refunded": system_fee_refunded})]
    else:
        replacement = [item.model_copy(update={"refunded": True})]

    line_items = [*snapshot.line_items[:idx], *replacement, *snapshot.line_items[idx + 1 :]]
    return _commit(snapshot, "refund_line_item", line_items=line_items)


def exchange_ticket(snapshot: BasketSnapshot, item_id: str, replacement: LineItem) -> BasketSnapshot:
    """Swap a ticket for one of another price category.

    The old line stays in the basket flagged ``exchanged``; both lines
    share a fresh ``exchange_id``.
    """
    idx = _find_index(snapshot.line_items, item_id)
    old = snapshot.line_items[idx]
    if old.type != "ticket" or replacement.type != "ticket":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only tickets can be exchanged")
    if old.refunded or old.exchanged:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Ticket is no longer active")
    if any(existing.id == replacement.id for existing in snapshot.line_items):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Line item already in basket")

    exchange_id = str(uuid4())
    line_items = list(snapshot.line_items)
    line_items[idx] = old.model_copy(update={"exchanged": True, "exchange_id": exchange_id})
    line_items.append(replacement.model_copy(update={"exchange_id": exchange_id}))
    return _commit(snapshot, "exchange_ticket", line_items=line_items)


def duplicate_coupon_codes(line_items: Sequence[LineItem]) -> list[str]:
    counts = Counter(item.coupon_code for item in line_items if item.type == "coupon")
    return [code for code, count in counts.items() if count > 1]


def record_basket_event(event: str, payload: dict | None = None) -> None:
    metrics.record_basket_change()
    logger.info("basket_%s", event, extra=payload or {})

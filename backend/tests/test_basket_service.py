from decimal import Decimal

import pytest
from fastapi import HTTPException

from boxoffice.core import metrics
from boxoffice.schemas.basket import BasketSnapshot
from boxoffice.services import basket as basket_service
from lineitem_factories import coupon, cross_selling, delivery, fee_policy, ticket


def _snapshot(*items) -> BasketSnapshot:
    return BasketSnapshot(line_items=list(items), fee_policy=fee_policy(amount="2", vat="19"))


def test_recalculate_bumps_version_and_attaches_breakdown() -> None:
    snapshot = _snapshot(ticket("t1", "50.00"))
    updated = basket_service.recalculate(snapshot)
    assert updated.version == 1
    assert updated.financial_breakdown is not None
    assert updated.financial_breakdown.subtotal == Decimal("50.00")
    assert snapshot.version == 0
    assert snapshot.financial_breakdown is None
    assert metrics.snapshot()["basket_changes"] == 1


def test_add_line_item_rejects_duplicate_ids() -> None:
    snapshot = basket_service.add_line_item(_snapshot(), ticket("t1", "50.00"))
    assert [item.id for item in snapshot.line_items] == ["t1"]
    with pytest.raises(HTTPException) as exc:
        basket_service.add_line_item(snapshot, ticket("t1", "20.00"))
    assert exc.value.status_code == 400


def test_remove_ticket_takes_its_add_ons_along() -> None:
    snapshot = _snapshot(
        ticket("t1", "50.00"),
        ticket("t2", "50.00"),
        cross_selling("parking", "5.00", ticket_line_item_id="t1"),
        cross_selling("programme", "3.00"),
    )
    updated = basket_service.remove_line_item(snapshot, "t1")
    assert [item.id for item in updated.line_items] == ["t2", "programme"]
    assert updated.financial_breakdown.subtotal == Decimal("53.00")


def test_remove_unknown_item_is_not_found() -> None:
    with pytest.raises(HTTPException) as exc:
        basket_service.remove_line_item(_snapshot(ticket("t1")), "nope")
    assert exc.value.status_code == 404


def test_set_line_items_and_delivery_option() -> None:
    snapshot = basket_service.set_line_items(_snapshot(), [ticket("t1", "50.00")])
    snapshot = basket_service.set_delivery_option(snapshot, delivery("5.00"))
    assert snapshot.version == 2
    assert snapshot.financial_breakdown.delivery_fee == Decimal("5.00")
    assert snapshot.financial_breakdown.invoice_total == Decimal("55.00")
    cleared = basket_service.set_delivery_option(snapshot, None)
    assert cleared.financial_breakdown.delivery_fee == Decimal("0.00")


def test_refund_ticket_keeps_fee_and_leaves_original_snapshot() -> None:
    snapshot = basket_service.recalculate(_snapshot(ticket("t1", "50.00")))
    refunded = basket_service.refund_line_item(snapshot, "t1")
    assert refunded.line_items[0].refunded is True
    assert refunded.line_items[0].system_fee_refunded is False
    assert refunded.financial_breakdown.subtotal == Decimal("2.00")
    assert snapshot.line_items[0].refunded is False
    assert snapshot.financial_breakdown.subtotal == Decimal("50.00")


def test_refund_ticket_together_with_its_fee() -> None:
    refunded = basket_service.refund_line_item(_snapshot(ticket("t1", "50.00")), "t1", system_fee_refunded=True)
    assert refunded.line_items[0].system_fee_refunded is True
    assert refunded.financial_breakdown.subtotal == Decimal("0.00")


def test_refund_part_of_a_cross_selling_line_splits_it_into_units() -> None:
    snapshot = _snapshot(cross_selling("cs1", "10.00", quantity=3, system_fee="1.00", system_fee_vat_rate="19"))
    refunded = basket_service.refund_line_item(snapshot, "cs1", quantity=2)
    assert [(item.id, item.quantity, item.refunded) for item in refunded.line_items] == [
        ("cs1", 1, True),
        ("cs1-2", 1, True),
        ("cs1-3", 1, False),
    ]
    assert all(item.total_price == Decimal("10.00") for item in refunded.line_items)
    assert refunded.financial_breakdown.subtotal == Decimal("12.00")


@pytest.mark.parametrize(
    ("item", "quantity"),
    [
        (cross_selling("cs1", quantity=2), 3),
        (cross_selling("cs1", is_refundable=False), None),
        (ticket("cs1"), 1),
        (ticket("cs1", refunded=True), None),
    ],
)
def test_invalid_refunds_are_rejected(item, quantity) -> None:
    with pytest.raises(HTTPException) as exc:
        basket_service.refund_line_item(_snapshot(item), "cs1", quantity=quantity)
    assert exc.value.status_code == 400


def test_refund_coupon_drops_the_discount() -> None:
    snapshot = _snapshot(ticket("t1", "50.00"), coupon("c1", "5.00"))
    refunded = basket_service.refund_line_item(snapshot, "c1")
    assert refunded.financial_breakdown.total_discount == Decimal("0.00")


def test_exchange_ticket_links_old_and_new_lines() -> None:
    snapshot = _snapshot(ticket("t1", "50.00"))
    exchanged = basket_service.exchange_ticket(snapshot, "t1", ticket("t1-new", "60.00"))
    old, new = exchanged.line_items
    assert old.exchanged is True
    assert old.exchange_id is not None
    assert new.exchange_id == old.exchange_id
    assert new.exchanged is False
    assert exchanged.financial_breakdown.subtotal == Decimal("62.00")


def test_exchange_rules() -> None:
    snapshot = _snapshot(ticket("t1", "50.00"), cross_selling("cs1"))
    with pytest.raises(HTTPException) as not_ticket:
        basket_service.exchange_ticket(snapshot, "cs1", ticket("t2"))
    assert not_ticket.value.status_code == 400

    with pytest.raises(HTTPException) as taken_id:
        basket_service.exchange_ticket(snapshot, "t1", ticket("cs1"))
    assert taken_id.value.status_code == 400

    exchanged = basket_service.exchange_ticket(snapshot, "t1", ticket("t2"))
    with pytest.raises(HTTPException) as twice:
        basket_service.exchange_ticket(exchanged, "t1", ticket("t3"))
    assert twice.value.status_code == 400


def test_split_units_keeps_single_items() -> None:
    item = cross_selling("cs1")
    assert basket_service.split_cross_selling_units(item) == [item]


def test_split_units_skip_ids_already_in_the_basket() -> None:
    snapshot = _snapshot(cross_selling("cs1", "10.00", quantity=2), cross_selling("cs1-2", "4.00"))
    refunded = basket_service.refund_line_item(snapshot, "cs1", quantity=1)
    ids = [item.id for item in refunded.line_items]
    assert ids == ["cs1", "cs1-3", "cs1-2"]
    assert len(ids) == len(set(ids))
    assert refunded.financial_breakdown.subtotal == Decimal("14.00")

    again = basket_service.refund_line_item(refunded, "cs1-3")
    assert [(item.id, item.refunded) for item in again.line_items] == [
        ("cs1", True),
        ("cs1-3", True),
        ("cs1-2", False),
    ]


def test_duplicate_coupon_codes() -> None:
    items = [coupon("c1", code="SUMMER"), coupon("c2", code="SUMMER"), coupon("c3", code="WINTER"), ticket("t1")]
    assert basket_service.duplicate_coupon_codes(items) == ["SUMMER"]

from decimal import Decimal

from boxoffice.schemas.line_items import (
    CouponLineItem,
    CrossSellingLineItem,
    DeliveryOption,
    OrganizerFeePolicy,
    PriceCategorySnapshot,
    SeatRef,
    TicketLineItem,
    VoucherLineItem,
)


def ticket(
    item_id: str = "t1",
    price: str = "50.00",
    vat: str = "19",
    *,
    quantity: int = 1,
    exclude_system_fee: bool = False,
    **flags: object,
) -> TicketLineItem:
    unit = Decimal(price)
    return TicketLineItem(
        id=item_id,
        quantity=quantity,
        unit_price=unit,
        total_price=unit * quantity,
        vat_rate=Decimal(vat),
        name=f"Ticket {item_id}",
        seat=SeatRef(id=f"seat-{item_id}", seat_row="A", seat_number="1"),
        price_category=PriceCategorySnapshot(id="pc-standard", exclude_system_fee=exclude_system_fee),
        **flags,
    )


def cross_selling(
    item_id: str = "cs1",
    price: str = "10.00",
    vat: str = "7",
    *,
    quantity: int = 1,
    system_fee: str = "0",
    system_fee_vat_rate: str | None = None,
    **flags: object,
) -> CrossSellingLineItem:
    unit = Decimal(price)
    return CrossSellingLineItem(
        id=item_id,
        quantity=quantity,
        unit_price=unit,
        total_price=unit * quantity,
        vat_rate=Decimal(vat),
        name=f"Product {item_id}",
        product_id=f"prod-{item_id}",
        system_fee=Decimal(system_fee),
        system_fee_vat_rate=Decimal(system_fee_vat_rate) if system_fee_vat_rate is not None else None,
        **flags,
    )


def coupon(
    item_id: str = "c1", amount: str = "10.00", *, is_voucher: bool = False, code: str | None = None, **flags: object
) -> CouponLineItem:
    value = Decimal(amount)
    return CouponLineItem(
        id=item_id,
        quantity=1,
        unit_price=-value,
        total_price=-value,
        name=f"Coupon {item_id}",
        coupon_code=code or item_id.upper(),
        discount_type="fixed_amount",
        discount_value=value,
        is_voucher=is_voucher,
        **flags,
    )


def voucher(item_id: str = "v1", price: str = "25.00", **flags: object) -> VoucherLineItem:
    unit = Decimal(price)
    return VoucherLineItem(id=item_id, quantity=1, unit_price=unit, total_price=unit, name="Gift voucher", **flags)


def fee_policy(amount: str | None = None, percentage: str | None = None, vat: str = "19") -> OrganizerFeePolicy:
    return OrganizerFeePolicy(
        system_fee_amount=Decimal(amount) if amount is not None else None,
        system_fee_percentage=Decimal(percentage) if percentage is not None else None,
        system_fee_vat_rate=Decimal(vat),
    )


def delivery(fee: str = "5.00", vat: str = "19", kind: str = "post") -> DeliveryOption:
    return DeliveryOption(id="d1", name="Post", type=kind, fee_amount=Decimal(fee), vat_rate=Decimal(vat))


def vat_rows(breakdown) -> list[tuple[Decimal, Decimal]]:
    return [(row.rate, row.amount) for row in breakdown.vat_breakdown]

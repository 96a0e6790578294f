from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from boxoffice.schemas.breakdown import BasketTotals, FinancialBreakdown, VatBreakdownItem
from boxoffice.schemas.line_items import (
    BreakdownOptions,
    CouponLineItem,
    CrossSellingLineItem,
    DeliveryOption,
    LineItem,
    OrganizerFeePolicy,
    TicketLineItem,
)
from boxoffice.services import discounts, vat
from boxoffice.services.pricing import (
    ZERO,
    MoneyRounding,
    cross_selling_system_fee,
    extract_inclusive_vat,
    quantize_money,
    ticket_system_fee,
)

logger = logging.getLogger(__name__)

DEFAULT_OPTIONS = BreakdownOptions()


@dataclass(frozen=True)
class ClassifiedItems:
    """Line items partitioned by how they reach the subtotal.

    ``kept`` holds items contributing their full value; cross-selling items
    appear there only while not refunded. ``refunded`` and ``exchanged`` can
    still leave a system fee behind. Coupons never reach the subtotal.
    """

    kept: tuple[LineItem, ...]
    refunded: tuple[LineItem, ...]
    exchanged: tuple[TicketLineItem, ...]
    coupons: tuple[CouponLineItem, ...]


def classify_line_items(line_items: Sequence[LineItem]) -> ClassifiedItems:
    kept: list[LineItem] = []
    refunded: list[LineItem] = []
    exchanged: list[TicketLineItem] = []
    coupons: list[CouponLineItem] = []
    for item in line_items:
        if item.type == "coupon":
            coupons.append(item)
        elif item.type == "ticket":
            if item.refunded:
                refunded.append(item)
            elif item.exchanged:
                exchanged.append(item)
            else:
                kept.append(item)
        elif item.type == "crossselling":
            if item.refunded:
                refunded.append(item)
            else:
                kept.append(_kept_cross_selling(item))
        elif item.refunded:
            refunded.append(item)
        else:
            kept.append(item)
    return ClassifiedItems(kept=tuple(kept), refunded=tuple(refunded), exchanged=tuple(exchanged), coupons=tuple(coupons))


def _kept_cross_selling(item: CrossSellingLineItem) -> CrossSellingLineItem:
    return item.model_copy(update={"total_price": item.unit_price * item.quantity})


def _retained_system_fee(item: LineItem, policy: OrganizerFeePolicy) -> Decimal:
    """Fee that stays with the organizer when the product part goes back."""
    if item.type == "ticket":
        if item.exclude_system_fee or item.system_fee_refunded:
            return ZERO
        return ticket_system_fee(item, policy)
    if item.type == "crossselling":
        if item.system_fee_refunded:
            return ZERO
        return cross_selling_system_fee(item, item.quantity)
    return ZERO


def compute_subtotal(
    classified: ClassifiedItems, policy: OrganizerFeePolicy, *, refund_system_fees: bool = False
) -> Decimal:
    kept_total = sum((item.total_price for item in classified.kept), start=ZERO)
    if refund_system_fees:
        return kept_total
    retained = sum(
        (_retained_system_fee(item, policy) for item in (*classified.refunded, *classified.exchanged)),
        start=ZERO,
    )
    return kept_total + retained


def _coupon_sum(coupons: Sequence[CouponLineItem], *, vouchers: bool) -> Decimal:
    total = sum((c.total_price for c in coupons if c.is_voucher == vouchers and not c.refunded), start=ZERO)
    return abs(total)


def total_system_fee(
    line_items: Sequence[LineItem], policy: OrganizerFeePolicy, *, refund_system_fees: bool = False
) -> Decimal:
    total = ZERO
    for item in line_items:
        if item.type == "ticket":
            if item.exclude_system_fee or item.system_fee_refunded:
                continue
            if refund_system_fees and (item.exchanged or item.refunded):
                continue
            total += ticket_system_fee(item, policy)
        elif item.type == "crossselling":
            kept_qty = 0 if item.refunded else item.quantity
            if item.system_fee_refunded or refund_system_fees:
                total += cross_selling_system_fee(item, kept_qty)
            else:
                total += cross_selling_system_fee(item, item.quantity)
    return total


def _ticket_fee_ratio(item: TicketLineItem, ratios: dict[str, Decimal], *, refund_system_fees: bool) -> Decimal:
    if item.refunded or item.exchanged:
        # a retained fee is never discounted
        if refund_system_fees or item.system_fee_refunded:
            return ZERO
        return discounts.ONE
    return ratios.get(item.id, discounts.ONE)


def _add_to_bucket(buckets: dict[Decimal, Decimal], rate: Decimal, amount: Decimal) -> None:
    buckets[rate] = buckets.get(rate, ZERO) + amount


def _add_ticket_fee_vat(
    buckets: dict[Decimal, Decimal],
    line_items: Sequence[LineItem],
    policy: OrganizerFeePolicy,
    ratios: dict[str, Decimal],
    *,
    refund_system_fees: bool,
) -> None:
    rate = policy.system_fee_vat_rate
    if rate <= 0:
        return
    for item in line_items:
        if item.type != "ticket" or item.exclude_system_fee:
            continue
        if item.exchanged and refund_system_fees:
            continue
        fee = ticket_system_fee(item, policy) * _ticket_fee_ratio(item, ratios, refund_system_fees=refund_system_fees)
        fee_vat = extract_inclusive_vat(fee, rate)
        if fee_vat > 0:
            _add_to_bucket(buckets, rate, fee_vat)


def _add_cross_selling_fee_vat(
    buckets: dict[Decimal, Decimal],
    line_items: Sequence[LineItem],
    ratios: dict[str, Decimal],
    *,
    refund_system_fees: bool,
) -> None:
    for item in line_items:
        if item.type != "crossselling":
            continue
        rate = vat.cross_selling_fee_vat_rate(item)
        if rate <= 0:
            continue
        if item.refunded:
            kept_fee = ZERO
            if refund_system_fees or item.system_fee_refunded:
                retained_fee = ZERO
            else:
                retained_fee = cross_selling_system_fee(item, item.quantity)
        else:
            kept_fee = cross_selling_system_fee(item, item.quantity) * ratios.get(item.id, discounts.ONE)
            retained_fee = ZERO
        fee_vat = extract_inclusive_vat(kept_fee + retained_fee, rate)
        if fee_vat > 0:
            _add_to_bucket(buckets, rate, fee_vat)


def _delivery_fee(delivery_option: DeliveryOption | None, *, include: bool) -> Decimal:
    if not include or delivery_option is None or not delivery_option.fee_amount:
        return ZERO
    return delivery_option.fee_amount


def _vat_breakdown(buckets: dict[Decimal, Decimal], *, rounding: MoneyRounding) -> list[VatBreakdownItem]:
    rows: list[VatBreakdownItem] = []
    for rate in sorted(buckets):
        if rate <= 0:
            continue
        amount = quantize_money(buckets[rate], rounding=rounding)
        if amount <= 0:
            continue
        rows.append(VatBreakdownItem(rate=rate, amount=amount))
    return rows


def empty_breakdown(currency: str = "EUR") -> FinancialBreakdown:
    return FinancialBreakdown(
        subtotal=ZERO,
        total_discount=ZERO,
        voucher_payments=ZERO,
        total_vat=ZERO,
        vat_breakdown=[],
        total_system_fee=ZERO,
        delivery_fee=ZERO,
        invoice_total=ZERO,
        total_amount=ZERO,
        currency=currency,
    )


def compute_breakdown(
    line_items: Sequence[LineItem],
    fee_policy: OrganizerFeePolicy,
    delivery_option: DeliveryOption | None = None,
    currency: str = "EUR",
    options: BreakdownOptions | None = None,
    *,
    rounding: MoneyRounding = "half_up",
) -> FinancialBreakdown:
    """Authoritative financial summary of a basket.

    Prices are VAT-inclusive and already contain their system fees.
    Discount coupons are spread over the kept items before VAT is
    extracted; voucher coupons settle the invoice afterwards and do not
    reduce the taxable value. Inputs are only read, never modified.
    """
    if not line_items:
        return empty_breakdown(currency)
    opts = options or DEFAULT_OPTIONS
    refund_fees = opts.refund_system_fees

    classified = classify_line_items(line_items)
    subtotal = compute_subtotal(classified, fee_policy, refund_system_fees=refund_fees)
    total_discount = _coupon_sum(classified.coupons, vouchers=False)
    voucher_payments = _coupon_sum(classified.coupons, vouchers=True)

    discounted = discounts.allocate_discount(classified.kept, total_discount)
    ratios = discounts.discount_ratios(discounted)

    buckets: dict[Decimal, Decimal] = {}
    for entry in discounted:
        item_vat = vat.product_vat(entry, fee_policy)
        _add_to_bucket(buckets, item_vat.rate, item_vat.amount)
    _add_ticket_fee_vat(buckets, line_items, fee_policy, ratios, refund_system_fees=refund_fees)
    _add_cross_selling_fee_vat(buckets, line_items, ratios, refund_system_fees=refund_fees)

    delivery_fee = _delivery_fee(delivery_option, include=opts.include_delivery_fee)
    if delivery_fee > 0 and delivery_option is not None:
        delivery_vat = extract_inclusive_vat(delivery_fee, delivery_option.vat_rate)
        if delivery_vat > 0:
            _add_to_bucket(buckets, delivery_option.vat_rate, delivery_vat)

    vat_rows = _vat_breakdown(buckets, rounding=rounding)
    total_vat = sum((row.amount for row in vat_rows), start=ZERO)

    invoice_total = quantize_money(subtotal - total_discount + delivery_fee, rounding=rounding)
    total_amount = quantize_money(invoice_total - voucher_payments, rounding=rounding)
    if total_amount < 0:
        logger.info(
            "breakdown_voucher_overpayment",
            extra={"invoice_total": str(invoice_total), "voucher_payments": str(voucher_payments)},
        )

    return FinancialBreakdown(
        subtotal=quantize_money(subtotal, rounding=rounding),
        total_discount=quantize_money(total_discount, rounding=rounding),
        voucher_payments=quantize_money(voucher_payments, rounding=rounding),
        total_vat=quantize_money(total_vat, rounding=rounding),
        vat_breakdown=vat_rows,
        total_system_fee=quantize_money(
            total_system_fee(line_items, fee_policy, refund_system_fees=refund_fees), rounding=rounding
        ),
        delivery_fee=quantize_money(delivery_fee, rounding=rounding),
        invoice_total=invoice_total,
        total_amount=total_amount,
        currency=currency,
    )


def total_from_breakdown(breakdown: FinancialBreakdown, *, rounding: MoneyRounding = "half_up") -> Decimal:
    """Amount the customer has to transfer, vouchers already subtracted."""
    if breakdown.total_amount is not None:
        return quantize_money(breakdown.total_amount, rounding=rounding)
    net = breakdown.subtotal - breakdown.total_discount
    return quantize_money(net + breakdown.delivery_fee - breakdown.voucher_payments, rounding=rounding)


def basket_totals(breakdown: FinancialBreakdown, *, rounding: MoneyRounding = "half_up") -> BasketTotals:
    return BasketTotals(
        subtotal=breakdown.subtotal,
        total_discount=breakdown.total_discount,
        voucher_payments=breakdown.voucher_payments,
        total_vat=breakdown.total_vat,
        vat_breakdown=list(breakdown.vat_breakdown),
        total_system_fee=breakdown.total_system_fee,
        delivery_fee=breakdown.delivery_fee,
        total=total_from_breakdown(breakdown, rounding=rounding),
        currency=breakdown.currency,
    )

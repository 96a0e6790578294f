from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class SeatRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    seat_number: str | None = None
    seat_row: str | None = None


class PriceCategorySnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    category_name: str | None = None
    exclude_system_fee: bool = False
    link_key: str | None = None


class _LineItemBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(ge=1)
    unit_price: Decimal
    total_price: Decimal
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    vat_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    name: str = ""


class TicketLineItem(_LineItemBase):
    type: Literal["ticket"] = "ticket"
    unit_price: Decimal = Field(ge=0)
    total_price: Decimal = Field(ge=0)
    show_id: str | None = None
    seat: SeatRef | None = None
    price_category: PriceCategorySnapshot | None = None
    refunded: bool = False
    exchanged: bool = False
    exchange_id: str | None = None
    system_fee_refunded: bool = False

    @property
    def exclude_system_fee(self) -> bool:
        return bool(self.price_category and self.price_category.exclude_system_fee)


class CrossSellingLineItem(_LineItemBase):
    type: Literal["crossselling"] = "crossselling"
    unit_price: Decimal = Field(ge=0)
    total_price: Decimal = Field(ge=0)
    product_id: str
    system_fee: Decimal = Field(default=Decimal("0"), ge=0)
    system_fee_vat_rate: Decimal | None = Field(default=None, ge=0, le=100)
    is_refundable: bool = True
    refunded: bool = False
    system_fee_refunded: bool = False
    # set for add-ons bound to a single ticket
    ticket_line_item_id: str | None = None


class CouponLineItem(_LineItemBase):
    type: Literal["coupon"] = "coupon"
    total_price: Decimal = Field(le=0)
    coupon_id: str | None = None
    coupon_code: str = ""
    discount_type: Literal["percentage", "fixed_amount"] = "fixed_amount"
    discount_value: Decimal = Decimal("0")
    is_voucher: bool = False
    refunded: bool = False


class VoucherLineItem(BaseModel):
    """A purchased multi-purpose voucher. Always 0% VAT, so it carries no rate."""

    model_config = ConfigDict(frozen=True)

    type: Literal["voucher"] = "voucher"
    id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)
    total_price: Decimal = Field(ge=0)
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    name: str = ""
    voucher_product_id: str | None = None
    voucher_product_type: Literal["digital", "physical"] = "digital"
    refunded: bool = False


LineItem = Annotated[
    Union[TicketLineItem, CrossSellingLineItem, CouponLineItem, VoucherLineItem],
    Field(discriminator="type"),
]


class OrganizerFeePolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    system_fee_amount: Decimal | None = Field(default=None, ge=0)
    system_fee_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    system_fee_vat_rate: Decimal = Field(ge=0, le=100)
    system_fee_currency: str = "EUR"


class DeliveryOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str | None = None
    name: str | None = None
    type: str = "digital"
    fee_amount: Decimal = Field(default=Decimal("0"), ge=0)
    vat_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    currency: str | None = None


class BreakdownOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    include_delivery_fee: bool = True
    # used while the order is still pending: system fees go back with the product
    refund_system_fees: bool = False

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from boxoffice.schemas.line_items import BreakdownOptions, DeliveryOption, LineItem, OrganizerFeePolicy


class VatBreakdownItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    rate: Decimal
    amount: Decimal


class FinancialBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: Decimal
    total_discount: Decimal
    voucher_payments: Decimal
    total_vat: Decimal
    vat_breakdown: list[VatBreakdownItem] = Field(default_factory=list)
    total_system_fee: Decimal
    delivery_fee: Decimal
    invoice_total: Decimal
    # negative when vouchers overpay a partially refunded order
    total_amount: Decimal | None = None
    currency: str = "EUR"


class BasketTotals(BaseModel):
    subtotal: Decimal
    total_discount: Decimal
    voucher_payments: Decimal
    total_vat: Decimal
    vat_breakdown: list[VatBreakdownItem] = Field(default_factory=list)
    total_system_fee: Decimal
    delivery_fee: Decimal
    total: Decimal
    currency: str = "EUR"


class BreakdownRequest(BaseModel):
    line_items: list[LineItem] = Field(default_factory=list)
    fee_policy: OrganizerFeePolicy
    delivery_option: DeliveryOption | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    options: BreakdownOptions = Field(default_factory=BreakdownOptions)

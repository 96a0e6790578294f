from pydantic import BaseModel, ConfigDict, Field

from boxoffice.schemas.breakdown import FinancialBreakdown
from boxoffice.schemas.line_items import BreakdownOptions, DeliveryOption, LineItem, OrganizerFeePolicy


class BasketSnapshot(BaseModel):
    """Immutable basket state. Every change produces a new snapshot."""

    model_config = ConfigDict(frozen=True)

    version: int = Field(default=0, ge=0)
    line_items: list[LineItem] = Field(default_factory=list)
    fee_policy: OrganizerFeePolicy
    delivery_option: DeliveryOption | None = None
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    options: BreakdownOptions = Field(default_factory=BreakdownOptions)
    financial_breakdown: FinancialBreakdown | None = None


class RefundRequest(BaseModel):
    basket: BasketSnapshot
    item_id: str = Field(min_length=1, max_length=64)
    # cross-selling only; defaults to every unit held by the line
    quantity: int | None = Field(default=None, ge=1)
    system_fee_refunded: bool = False


class ExchangeRequest(BaseModel):
    basket: BasketSnapshot
    item_id: str = Field(min_length=1, max_length=64)
    replacement: LineItem

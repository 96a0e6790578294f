from fastapi import APIRouter

from boxoffice.core import metrics
from boxoffice.core.config import settings
from boxoffice.schemas.breakdown import BasketTotals, BreakdownRequest, FinancialBreakdown
from boxoffice.services import breakdown as breakdown_service


router = APIRouter(prefix="/breakdown", tags=["breakdown"])


def _compute(payload: BreakdownRequest) -> FinancialBreakdown:
    result = breakdown_service.compute_breakdown(
        payload.line_items,
        payload.fee_policy,
        payload.delivery_option,
        payload.currency or settings.default_currency,
        payload.options,
        rounding=settings.money_rounding,
    )
    metrics.record_breakdown_computed()
    if result.total_amount is not None and result.total_amount < 0:
        metrics.record_voucher_overpayment()
    return result


@router.post("", response_model=FinancialBreakdown)
def compute_breakdown(payload: BreakdownRequest) -> FinancialBreakdown:
    return _compute(payload)


@router.post("/totals", response_model=BasketTotals)
def compute_basket_totals(payload: BreakdownRequest) -> BasketTotals:
    return breakdown_service.basket_totals(_compute(payload), rounding=settings.money_rounding)

from fastapi import APIRouter

from boxoffice.schemas.basket import BasketSnapshot, ExchangeRequest, RefundRequest
from boxoffice.services import basket as basket_service


router = APIRouter(prefix="/basket", tags=["basket"])


@router.post("/recalculate", response_model=BasketSnapshot)
def recalculate_basket(payload: BasketSnapshot) -> BasketSnapshot:
    return basket_service.recalculate(payload)


@router.post("/refund", response_model=BasketSnapshot)
def refund_line_item(payload: RefundRequest) -> BasketSnapshot:
    return basket_service.refund_line_item(
        payload.basket,
        payload.item_id,
        quantity=payload.quantity,
        system_fee_refunded=payload.system_fee_refunded,
    )


@router.post("/exchange", response_model=BasketSnapshot)
def exchange_ticket(payload: ExchangeRequest) -> BasketSnapshot:
    return basket_service.exchange_ticket(payload.basket, payload.item_id, payload.replacement)

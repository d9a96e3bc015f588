# app/routers/payapp.py

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from app.core.limiter import PUBLIC_FORM_LIMIT, limiter
from app.dependencies import get_db
from app.schemas.payment import PayAppRequest, PayAppRequestResponse
from app.services import payment as payment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payapp", tags=["PayApp"])


@router.post("/request", response_model=PayAppRequestResponse)
@limiter.limit(PUBLIC_FORM_LIMIT)
async def request_payment(request: Request, data: PayAppRequest, db: Session = Depends(get_db)):
    """Запрос оплаты договора. Сумма определяется типом договора."""
    payment = await payment_service.request_payment_for_contract_id(db, data.contract_id)
    return PayAppRequestResponse(
        order_id=payment.order_id,
        pay_url=payment.pay_url,
        mul_no=payment.pg_transaction_id,
        amount=payment.amount,
    )


@router.post("/feedback", include_in_schema=False)
async def payapp_feedback(request: Request, db: Session = Depends(get_db)):
    """
    Уведомление от PayApp (form-urlencoded). Шлюз ждет ответ
    обычным текстом: SUCCESS или FAIL.
    """
    form = dict(await request.form())
    if not await payment_service.handle_feedback(db, form):
        return PlainTextResponse("FAIL", status_code=400)
    return PlainTextResponse("SUCCESS")

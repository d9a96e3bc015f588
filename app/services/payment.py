# app/services/payment.py

import logging
import time

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.bot.services import notification as bot_notification_service
from app.clients.payapp import PayAppError, payapp_client
from app.core.config import settings
from app.crud import contract as crud_contract, payment as crud_payment
from app.models.contract import AffiliateContract
from app.models.payment import Payment
from app.utils.dates import utcnow
from app.utils.phone import digits_only

logger = logging.getLogger(__name__)

PAY_STATE_COMPLETED = "4"
PAY_STATE_CANCELLED = ("9", "64")

# Стоимость договора по типу, в вонах
CONTRACT_PRICES = {
    "SALES_AGENT": 3_300_000,
    "BRANCH_MANAGER": 7_500_000,
    "CRUISE_STAFF": 5_400_000,
    "PRIMARKETER": 1_000_000,
    "SUBSCRIPTION_AGENT": 100_000,
}

CONTRACT_TYPE_NAMES = {
    "SALES_AGENT": "판매원 계약",
    "BRANCH_MANAGER": "대리점장 계약",
    "CRUISE_STAFF": "크루즈스탭 계약",
    "PRIMARKETER": "프리마케터 계약",
    "SUBSCRIPTION_AGENT": "구독 판매원 계약",
}


def feedback_url() -> str:
    return f"{settings.BASE_URL.rstrip('/')}/api/payapp/feedback"


async def send_pay_request(payment: Payment, var1: str, var2: str) -> dict:
    """Отправляет payrequest; отказ шлюза превращается в 400 с его сообщением."""
    try:
        return await payapp_client.pay_request(
            goodname=payment.product_name or payment.order_id,
            price=payment.amount,
            recvphone=digits_only(payment.buyer_phone),
            feedbackurl=feedback_url(),
            var1=var1,
            var2=var2,
        )
    except PayAppError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


async def request_contract_payment(db: Session, contract: AffiliateContract) -> Payment:
    price = CONTRACT_PRICES.get(contract.contract_type or "")
    if price is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="계약 유형이 지정되지 않았습니다.")

    payment = crud_payment.create_payment(
        db,
        order_id=f"CT_{contract.id}_{int(time.time() * 1000)}",
        product_code=contract.contract_type,
        product_name=CONTRACT_TYPE_NAMES[contract.contract_type],
        amount=price,
        buyer_name=contract.name,
        buyer_phone=contract.phone,
        buyer_email=contract.email,
        contract_id=contract.id,
    )
    result = await send_pay_request(payment, var1=str(contract.id), var2=contract.contract_type)
    payment.pay_url = result["payurl"]
    payment.pg_transaction_id = result["mul_no"]
    db.commit()
    db.refresh(payment)
    logger.info(f"PayApp request created for contract {contract.id}: {payment.order_id}.")
    return payment


async def request_payment_for_contract_id(db: Session, contract_id: int) -> Payment:
    contract = crud_contract.get_contract(db, contract_id)
    if contract is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="계약서를 찾을 수 없습니다.")
    return await request_contract_payment(db, contract)


def _apply_state(payment: Payment, pay_state: str, form: dict) -> bool:
    """Возвращает True, если платеж только что стал оплаченным."""
    now = utcnow()
    payment.meta = {**(payment.meta or {}), "lastFeedback": {k: v for k, v in form.items() if k != "linkkey"}}
    if pay_state == PAY_STATE_COMPLETED:
        already_paid = payment.status == "completed"
        payment.status = "completed"
        payment.paid_at = payment.paid_at or now
        if form.get("mul_no"):
            payment.pg_transaction_id = form["mul_no"]
        return not already_paid
    if pay_state in PAY_STATE_CANCELLED:
        payment.status = "cancelled"
        payment.cancelled_at = now
    return False


async def handle_feedback(db: Session, form: dict) -> bool:
    """
    Обрабатывает уведомление PayApp. False означает неверные реквизиты
    (ответ FAIL); во всех остальных случаях шлюзу отвечаем SUCCESS.
    """
    if not payapp_client.credentials_match(form.get("userid"), form.get("linkkey"), form.get("linkval")):
        logger.warning("PayApp feedback with invalid credentials rejected.")
        return False

    pay_state = str(form.get("pay_state") or "")
    var1 = form.get("var1") or ""
    var2 = form.get("var2") or ""

    if var2.startswith("LP_") or var1.startswith("LP_"):
        order_id = var1 if var1.startswith("LP_") else var2
        payment = crud_payment.get_payment_by_order_id(db, order_id)
    else:
        payment = crud_payment.get_latest_contract_payment(db, int(var1)) if var1.isdigit() else None

    if payment is None:
        logger.warning(f"PayApp feedback for unknown payment (var1={var1!r}, var2={var2!r}).")
        return True

    newly_paid = _apply_state(payment, pay_state, form)
    if newly_paid and payment.contract_id:
        contract = crud_contract.get_contract(db, payment.contract_id)
        if contract is not None:
            contract.meta = {
                **(contract.meta or {}),
                "paymentStatus": "PAID",
                "paymentOrderId": payment.order_id,
                "paidAt": payment.paid_at.isoformat(),
            }
    db.commit()
    logger.info(f"PayApp feedback processed for {payment.order_id}: pay_state={pay_state}, status={payment.status}.")

    if newly_paid:
        await bot_notification_service.send_payment_completed_to_admin(payment)
    return True

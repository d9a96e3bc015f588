# tests/test_payapp.py

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from app.models.contract import AffiliateContract
from app.models.payment import Payment

CREDENTIALS = {"userid": "cruise-seller", "linkkey": "test-linkkey", "linkval": "test-linkval"}


@pytest.fixture
def contract_payment(db_session) -> Payment:
    contract = AffiliateContract(name="홍길동", phone="010-1234-5678", contract_type="SALES_AGENT", status="approved")
    db_session.add(contract)
    db_session.flush()
    payment = Payment(order_id=f"CT_{contract.id}_1700000000000", amount=3_300_000, contract_id=contract.id)
    db_session.add(payment)
    db_session.commit()
    return payment


@pytest.fixture
def landing_payment(db_session) -> Payment:
    payment = Payment(order_id="LP_7_1700000000000_123456789", amount=99_000, product_name="상담 예약")
    db_session.add(payment)
    db_session.commit()
    return payment


async def test_feedback_with_wrong_credentials_fails(client: AsyncClient, contract_payment):
    response = await client.post(
        "/api/payapp/feedback",
        data={**CREDENTIALS, "linkval": "wrong", "pay_state": "4", "var1": str(contract_payment.contract_id)},
    )

    assert response.status_code == 400
    assert response.text == "FAIL"


async def test_contract_payment_completed(client: AsyncClient, db_session, contract_payment, mock_bot):
    response = await client.post(
        "/api/payapp/feedback",
        data={**CREDENTIALS, "pay_state": "4", "var1": str(contract_payment.contract_id), "mul_no": "998877"},
    )

    assert response.status_code == 200
    assert response.text == "SUCCESS"
    db_session.refresh(contract_payment)
    assert contract_payment.status == "completed"
    assert contract_payment.paid_at is not None
    assert contract_payment.pg_transaction_id == "998877"
    assert "linkkey" not in contract_payment.meta["lastFeedback"]

    contract = db_session.get(AffiliateContract, contract_payment.contract_id)
    assert contract.meta["paymentStatus"] == "PAID"
    assert contract.meta["paymentOrderId"] == contract_payment.order_id
    mock_bot.send_message.assert_awaited_once()


async def test_repeated_completion_notifies_once(client: AsyncClient, contract_payment, mock_bot):
    form = {**CREDENTIALS, "pay_state": "4", "var1": str(contract_payment.contract_id)}

    await client.post("/api/payapp/feedback", data=form)
    await client.post("/api/payapp/feedback", data=form)

    assert mock_bot.send_message.await_count == 1


async def test_landing_payment_found_by_order_id(client: AsyncClient, db_session, landing_payment):
    response = await client.post(
        "/api/payapp/feedback",
        data={**CREDENTIALS, "pay_state": "4", "var1": landing_payment.order_id, "var2": "LP_7"},
    )

    assert response.text == "SUCCESS"
    db_session.refresh(landing_payment)
    assert landing_payment.status == "completed"


@pytest.mark.parametrize("pay_state", ["9", "64"])
async def test_cancelled_payment(client: AsyncClient, db_session, landing_payment, pay_state):
    await client.post(
        "/api/payapp/feedback",
        data={**CREDENTIALS, "pay_state": pay_state, "var1": landing_payment.order_id},
    )

    db_session.refresh(landing_payment)
    assert landing_payment.status == "cancelled"
    assert landing_payment.cancelled_at is not None


async def test_unknown_payment_still_acknowledged(client: AsyncClient, db_session):
    response = await client.post("/api/payapp/feedback", data={**CREDENTIALS, "pay_state": "4", "var1": "424242"})

    assert response.status_code == 200
    assert response.text == "SUCCESS"


async def test_admin_payment_link_for_contract(client: AsyncClient, db_session, admin_auth_headers, mocker):
    contract = AffiliateContract(name="홍길동", phone="010-1234-5678", contract_type="SALES_AGENT", status="approved")
    db_session.add(contract)
    db_session.commit()
    pay_request = mocker.patch(
        "app.services.payment.payapp_client.pay_request",
        new_callable=AsyncMock,
        return_value={"payurl": "https://payapp.kr/pay/abc", "mul_no": "555"},
    )

    response = await client.post(
        f"/api/admin/affiliate/contracts/{contract.id}/payment-link", headers=admin_auth_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["payUrl"] == "https://payapp.kr/pay/abc"
    assert "/p/" in data["shortUrl"]
    assert pay_request.await_args.kwargs["var1"] == str(contract.id)
    payment = db_session.query(Payment).one()
    assert payment.order_id.startswith(f"CT_{contract.id}_")
    assert payment.pg_transaction_id == "555"

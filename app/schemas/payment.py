# app/schemas/payment.py
from typing import Optional

from app.schemas.common import CamelModel


class PayAppRequest(CamelModel):
    contract_id: int


class PayAppRequestResponse(CamelModel):
    ok: bool = True
    order_id: str
    pay_url: str
    mul_no: Optional[str] = None
    amount: int

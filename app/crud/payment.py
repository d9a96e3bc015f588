# app/crud/payment.py
from sqlalchemy.orm import Session

from app.models.payment import Payment


def get_payment_by_order_id(db: Session, order_id: str) -> Payment | None:
    return db.query(Payment).filter(Payment.order_id == order_id).first()

def get_latest_contract_payment(db: Session, contract_id: int) -> Payment | None:
    return db.query(Payment).filter(Payment.contract_id == contract_id).order_by(Payment.id.desc()).first()

def create_payment(db: Session, **fields) -> Payment:
    payment = Payment(**fields)
    db.add(payment)
    db.flush()
    return payment

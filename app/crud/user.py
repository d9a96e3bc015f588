# app/crud/user.py
import re

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.user import User
from app.utils.phone import phone_variants


def get_user_by_id(db: Session, user_id: int) -> User | None:
    """Получает пользователя по его первичному ключу."""
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_login(db: Session, login: str) -> User | None:
    """Логин партнера (boss3) или номер телефона в любой записи."""
    login = (login or "").strip()
    if not login:
        return None
    conditions = [func.lower(User.mall_user_id) == login.lower()]
    variants = phone_variants(login)
    if variants:
        conditions.append(User.phone.in_(variants))
    return db.query(User).filter(or_(*conditions)).order_by(User.id).first()

def get_user_by_phone(db: Session, phone: str) -> User | None:
    variants = phone_variants(phone)
    if not variants:
        return None
    return db.query(User).filter(User.phone.in_(variants)).order_by(User.id).first()

def create_user(
    db: Session,
    name: str | None,
    phone: str | None,
    email: str | None = None,
    role: str = "community",
    mall_user_id: str | None = None,
    password_hash: str | None = None,
) -> User:
    """Добавляет пользователя в текущую транзакцию."""
    db_user = User(
        name=name,
        phone=phone,
        email=email,
        role=role,
        mall_user_id=mall_user_id,
        mall_nickname=name,
        password_hash=password_hash,
    )
    db.add(db_user)
    db.flush()
    return db_user

def partner_id_pattern(prefix: str) -> re.Pattern:
    """Логин партнера: {prefix}{N} или {prefix}{N}-что-то, N до 5 цифр."""
    return re.compile(rf"^{re.escape(prefix)}(\d{{1,5}})(?:-.*)?$", re.IGNORECASE)

def get_used_partner_numbers(db: Session, prefix: str) -> set[int]:
    """
    Собирает номера, уже занятые логинами вида {prefix}{N} или {prefix}{N}-что-то.
    """
    pattern = partner_id_pattern(prefix)
    rows = db.query(User.mall_user_id).filter(User.mall_user_id.ilike(f"{prefix}%")).all()
    used = set()
    for (login,) in rows:
        match = pattern.match(login or "")
        if match:
            used.add(int(match.group(1)))
    return used

def count_all_users(db: Session) -> int:
    return db.query(User).count()

# app/utils/phone.py
import re

_NON_DIGITS = re.compile(r"[^0-9]")


def digits_only(phone: str | None) -> str:
    """Оставляет в номере только цифры."""
    if not phone:
        return ""
    return _NON_DIGITS.sub("", phone)


def normalize_phone(phone: str | None) -> str:
    """
    Приводит корейский номер к виду с дефисами:
    11 цифр -> 010-1234-5678, 10 цифр -> 031-123-4567.
    Номера другой длины возвращаются просто цифрами.
    """
    digits = digits_only(phone)
    if len(digits) == 11:
        return f"{digits[:3]}-{digits[3:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"
    return digits


def phone_variants(phone: str | None) -> list[str]:
    """Все формы записи номера, под которыми он может лежать в базе."""
    digits = digits_only(phone)
    if not digits:
        return []
    return list(dict.fromkeys([digits, normalize_phone(digits)]))

# app/utils/codes.py
import re
import secrets
import string
import time

ALPHANUMERIC = string.ascii_letters + string.digits
_BASE36 = string.digits + string.ascii_lowercase


def random_code(length: int = 6, alphabet: str = ALPHANUMERIC) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    chars = []
    while value:
        value, rem = divmod(value, 36)
        chars.append(_BASE36[rem])
    return "".join(reversed(chars))


def link_code() -> str:
    """Код партнерской ссылки: LINK-{время в base36}-{4 случайных символа}."""
    timestamp = to_base36(int(time.time() * 1000))
    suffix = random_code(4, string.ascii_lowercase + string.digits)
    return f"LINK-{timestamp}-{suffix}".upper()


def slugify(value: str) -> str:
    """Латиница, цифры и дефисы. Хангыль и прочее выбрасывается."""
    slug = re.sub(r"[^a-zA-Z0-9]+", "-", value or "").strip("-").lower()
    return slug or "partner"


def affiliate_code(name: str, user_id: int) -> str:
    """AFF-{slug[:12]}-{hex4}-{user_id} в верхнем регистре."""
    return f"AFF-{slugify(name)[:12]}-{secrets.token_hex(2)}-{user_id}".upper()

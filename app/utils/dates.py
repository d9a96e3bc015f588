# app/utils/dates.py
import calendar
from datetime import date, datetime, timezone

from fastapi import HTTPException, status


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite отдает naive-даты: считаем их UTC, чтобы сравнение с aware не падало."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_range(period: str) -> tuple[datetime, datetime]:
    """
    'YYYY-MM' -> [начало месяца, начало следующего месяца) в UTC.
    Неверный формат -> 400.
    """
    try:
        year_str, month_str = period.split("-")
        year, month = int(year_str), int(month_str)
        start = datetime(year, month, 1, tzinfo=timezone.utc)
    except (ValueError, AttributeError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="period должен быть в формате YYYY-MM"
        )
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


def current_month(today: date | None = None) -> str:
    today = today or utcnow().date()
    return f"{today.year}-{today.month:02d}"


def add_years(value: date, years: int) -> date:
    """Сдвиг на N лет; 29 февраля превращается в 28-е."""
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


def add_months(value: date, months: int) -> date:
    """Сдвиг на N месяцев; день обрезается до длины целевого месяца."""
    month_index = value.month - 1 + months
    year, month = value.year + month_index // 12, month_index % 12 + 1
    return value.replace(year=year, month=month, day=min(value.day, calendar.monthrange(year, month)[1]))

# app/bot/services/notification.py
import asyncio
import logging
from html import escape

from aiogram.exceptions import TelegramAPIError
from aiogram.utils.keyboard import InlineKeyboardBuilder

from app.bot.core import bot
from app.core.config import settings
from app.models.contract import AffiliateContract
from app.models.payment import Payment

logger = logging.getLogger(__name__)

CONTRACT_TYPE_TITLES = {
    "SALES_AGENT": "판매원",
    "BRANCH_MANAGER": "대리점장",
    "CRUISE_STAFF": "크루즈스탭",
    "PRIMARKETER": "프리마케터",
    "SUBSCRIPTION_AGENT": "구독 판매원",
}


async def _send_to_admin_chat(text: str, builder: InlineKeyboardBuilder | None = None) -> bool:
    """
    Отправляет сообщение в админский чат.
    Ошибка Telegram не должна ломать бизнес-операцию, поэтому только логируем.
    """
    try:
        await bot.send_message(
            chat_id=settings.ADMIN_CHAT_ID,
            text=text,
            reply_markup=builder.as_markup() if builder else None,
        )
        return True
    except TelegramAPIError as e:
        logger.error(f"Failed to send message to admin chat: {e}")
        return False


def _contract_link(contract_id: int) -> InlineKeyboardBuilder:
    builder = InlineKeyboardBuilder()
    builder.button(text="📄 Открыть договор", url=f"{settings.BASE_URL}/admin/affiliate/contracts/{contract_id}")
    return builder


async def send_new_contract_to_admin(contract: AffiliateContract):
    """Новая анкета партнера."""
    type_title = CONTRACT_TYPE_TITLES.get(contract.contract_type or "", "미지정")
    inviter = ""
    if contract.invited_by:
        inviter = f"\n🤝 <b>초대:</b> {escape(contract.invited_by.display_name or contract.invited_by.affiliate_code)}"
    message = (
        f"<b>📝 새 계약서 접수 #{contract.id}</b>\n\n"
        f"👤 <b>이름:</b> {escape(contract.name)}\n"
        f"📞 <b>연락처:</b> <code>{escape(contract.phone)}</code>\n"
        f"🏷 <b>유형:</b> {type_title}"
        f"{inviter}"
    )
    await _send_to_admin_chat(message, _contract_link(contract.id))


async def send_contract_approved_to_admin(contract: AffiliateContract, partner_id: str):
    message = (
        f"✅ <b>계약 승인 #{contract.id}</b>\n\n"
        f"{escape(contract.name)} → 파트너 ID <code>{escape(partner_id)}</code>"
    )
    await _send_to_admin_chat(message)


async def send_payment_completed_to_admin(payment: Payment):
    message = (
        f"💳 <b>결제 완료</b>\n\n"
        f"<b>주문번호:</b> <code>{escape(payment.order_id)}</code>\n"
        f"<b>상품:</b> {escape(payment.product_name or '-')}\n"
        f"<b>금액:</b> {payment.amount:,}원\n"
        f"<b>구매자:</b> {escape(payment.buyer_name or '-')} {escape(payment.buyer_phone or '')}"
    )
    await _send_to_admin_chat(message)


async def send_recovery_failed_to_admin(contract_id: int, error: str, retry_count: int):
    message = (
        f"⚠️ <b>DB 회수 실패</b>\n\n"
        f"<b>계약:</b> #{contract_id}\n"
        f"<b>재시도:</b> {retry_count}회\n"
        f"<b>오류:</b> <code>{escape(error[:500])}</code>"
    )
    await _send_to_admin_chat(message, _contract_link(contract_id))


async def send_error_to_super_admins(error_message: str):
    """
    Отправляет сообщение о критической ошибке всем супер-админам в личные сообщения.
    """
    if not settings.SUPER_ADMIN_IDS:
        logger.warning("SUPER_ADMIN_IDS is not set. Critical error cannot be sent.")
        return

    # Лимит Telegram 4096 символов
    if len(error_message) > 4096:
        error_message = error_message[:4090] + "\n[...]"

    tasks = [
        bot.send_message(chat_id=admin_id, text=error_message)
        for admin_id in settings.SUPER_ADMIN_IDS
    ]
    results = await asyncio.gather(*tasks, return_exceptions=True)
    for admin_id, result in zip(settings.SUPER_ADMIN_IDS, results):
        if isinstance(result, Exception):
            logger.error(f"Failed to send error report to super admin {admin_id}: {result}")

# app/bot/core.py
from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from app.core.config import settings

# Бот работает только на отправку: алерты в админский чат и супер-админам
default_properties = DefaultBotProperties(parse_mode=ParseMode.HTML)

bot = Bot(token=settings.TELEGRAM_BOT_TOKEN, default=default_properties)

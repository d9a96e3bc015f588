# app/core/config.py

import json
from typing import Any, Dict, List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Настройки базы данных
    DATABASE_USER: str
    DATABASE_PASSWORD: str
    DATABASE_HOST: str
    DATABASE_PORT: int
    DATABASE_NAME: str

    # Настройки JWT токенов
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7 # 7 дней

    REDIS_HOST: str
    REDIS_PORT: int

    # Telegram-бот для уведомлений администраторов
    TELEGRAM_BOT_TOKEN: str
    ADMIN_CHAT_ID: int
    SUPER_ADMIN_IDS_STR: str = Field(default="", alias="SUPER_ADMIN_IDS")

    # Публичные адреса
    BASE_URL: str = "http://localhost:8000"
    SHORTLINK_DOMAIN: str = ""
    CORS_ORIGINS_STR: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    # Платежный шлюз PayApp
    PAYAPP_API_URL: str = "https://api.payapp.kr/oapi/apiLoad.html"
    PAYAPP_USERID: str = ""
    PAYAPP_LINKKEY: str = ""
    PAYAPP_LINKVAL: str = ""

    # Почта (отправка подписанных договоров)
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_NAME: str = "Cruise Affiliate"

    UPLOAD_DIR: str = "/app/uploads"
    PARTNER_INITIAL_PASSWORD: str = "1101"
    SCHEDULER_TIMEZONE: str = "Asia/Seoul"
    RATE_LIMIT_ENABLED: bool = True

    # Ставки комиссий в процентах от чистой выручки
    COMMISSION_RATES_JSON: str = Field(
        default='{"branch_with_agent": 10, "branch_solo": 15, "sales": 5, "override": 0}'
    )
    WITHHOLDING_RATE: float = 3.3

    # Это свойство будет автоматически парсить JSON в словарь
    COMMISSION_RATES: Dict[str, Any] = Field(default={}, validate_default=True)

    @property
    def SUPER_ADMIN_IDS(self) -> List[int]:
        return [int(admin_id.strip()) for admin_id in self.SUPER_ADMIN_IDS_STR.split(',') if admin_id.strip()]

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS_STR.split(',') if origin.strip()]

    @property
    def SHORTLINK_BASE(self) -> str:
        # Без отдельного домена короткие ссылки живут на основном
        return (self.SHORTLINK_DOMAIN or self.BASE_URL).rstrip('/')

    @field_validator("COMMISSION_RATES", mode="before")
    def parse_commission_rates(cls, v, values):
        # values.data содержит уже провалидированные поля, включая COMMISSION_RATES_JSON
        json_str = values.data.get("COMMISSION_RATES_JSON")
        if json_str:
            return json.loads(json_str)
        return v

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql+psycopg2://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"

    model_config = SettingsConfigDict(env_file=".env", populate_by_name=True)

settings = Settings()

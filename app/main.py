# app/main.py

import asyncio
import traceback
import logging
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

# Конфигурация и ядро
from app.core.config import settings as config
from app.core.limiter import limiter
from app.core.logging_config import setup_logging
from app.core.redis import redis_client

# Роутеры FastAPI
from app.routers.api import api_router
from app.routers.shortlink import router as shortlink_router

# Фоновые задачи и сервисы
from app.services.link import cleanup_affiliate_links_task
from app.services.contract import scan_contract_renewals_task
from app.services.recovery import process_due_recoveries_task
from app.bot.services import notification as bot_notification_service

# --- Инициализация ---
logger = logging.getLogger(__name__)
scheduler = AsyncIOScheduler()


# --- Обработчики ошибок ---
# Фронтенд ждет единый формат {ok: false, message}

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else "요청 형식이 올바르지 않습니다."
    return JSONResponse(
        status_code=400,
        content={"ok": False, "message": message, "errors": jsonable_errors(errors)},
    )


def jsonable_errors(errors: list) -> list:
    # В ctx pydantic кладет объекты исключений, они не сериализуются
    return [{k: v for k, v in error.items() if k in ("loc", "msg", "type")} for error in errors]


async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Глобальный обработчик для всех необработанных исключений.
    Логирует ошибку и отправляет уведомление супер-админам.
    """
    logger.critical(f"Unhandled exception for request: {request.method} {request.url}", exc_info=True)

    error_details = "".join(traceback.format_exception(exc))
    client = f"{request.client.host}:{request.client.port}" if request.client else "unknown"

    error_message = (
        f"🚨 <b>Критическая ошибка в API!</b>\n\n"
        f"<b>URL:</b> <code>{request.method} {request.url}</code>\n"
        f"<b>Client:</b> <code>{client}</code>\n\n"
        f"<b>Traceback:</b>\n<pre>{error_details[-3000:]}</pre>"
    )

    asyncio.create_task(
        bot_notification_service.send_error_to_super_admins(error_message)
    )

    return JSONResponse(
        status_code=500,
        content={"ok": False, "message": "서버 오류가 발생했습니다. 관리자에게 알림이 전송되었습니다."},
    )


# --- Lifespan Manager (запуск и остановка приложения) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application lifespan startup...")

    # Блокировка через Redis: планировщик запускается только в одном воркере
    is_main_worker = await redis_client.set("app_startup_lock", "1", ex=60, nx=True)

    if is_main_worker:
        logger.info("This is the main worker. Starting scheduler...")
        if not scheduler.running:
            tz = config.SCHEDULER_TIMEZONE
            scheduler.add_job(cleanup_affiliate_links_task, 'cron', hour=3, minute=0, timezone=tz)
            scheduler.add_job(scan_contract_renewals_task, 'cron', hour=4, minute=0, timezone=tz)
            scheduler.add_job(process_due_recoveries_task, 'cron', minute=15, timezone=tz)  # каждый час
            scheduler.start()
            logger.info("Scheduler started with background jobs.")
    else:
        logger.info("This is a secondary worker. Skipping scheduler setup.")

    yield

    if is_main_worker:
        logger.info("Main worker shutting down...")
        if scheduler.running:
            scheduler.shutdown()
            logger.info("Scheduler shut down.")
        await redis_client.delete("app_startup_lock")
    else:
        logger.info("Secondary worker shutting down.")


# --- Создание FastAPI приложения ---
app = FastAPI(
    title="Cruise Affiliate Service",
    description="Backend for the cruise mall affiliate program: contracts, partners, leads, sales and settlements",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,  # cookie affiliate_code для лендингов
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Лимиты запросов ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- Регистрация обработчиков исключений ---
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Подключение роутеров FastAPI ---
app.include_router(api_router, prefix="/api")

# Короткие ссылки остаются в корне: /p/{code}
app.include_router(shortlink_router)

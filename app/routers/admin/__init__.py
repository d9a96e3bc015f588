# app/routers/admin/__init__.py

from fastapi import APIRouter, Depends

from app.dependencies import get_admin_user

from . import (
    chatbot,
    contracts,
    general,
    landing,
    leads,
    links,
    marketing,
    products,
    profiles,
    sales,
    settlements,
    shortlinks,
    tasks,
)

# Зависимость get_admin_user применяется ко всем эндпоинтам раздела
router = APIRouter(
    tags=["Admin"],
    dependencies=[Depends(get_admin_user)]
)

# /admin/dashboard, /admin/audit-logs, /admin/cache/clear
router.include_router(general.router)

# Партнерская программа: /admin/affiliate/...
router.include_router(contracts.router, prefix="/affiliate/contracts")
router.include_router(profiles.router, prefix="/affiliate/profiles")
router.include_router(leads.router, prefix="/affiliate/leads")
router.include_router(products.router, prefix="/affiliate/products")
router.include_router(links.router, prefix="/affiliate/links")
router.include_router(sales.router, prefix="/affiliate/sales")
router.include_router(sales.commission_router, prefix="/affiliate")
router.include_router(settlements.router, prefix="/affiliate/settlements")

router.include_router(shortlinks.router, prefix="/shortlinks")
router.include_router(chatbot.router, prefix="/chat-bot/flows")
router.include_router(landing.router, prefix="/landing-pages")
router.include_router(marketing.router, prefix="/marketing/customers")
router.include_router(tasks.router, prefix="/tasks")

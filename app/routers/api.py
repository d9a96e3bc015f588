# app/routers/api.py

from fastapi import APIRouter

from app.routers import admin, auth, chatbot, partner, payapp, public

# Все пути этого роутера получают префикс /api в main.py
api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(partner.router)
api_router.include_router(chatbot.router)
api_router.include_router(public.router)
api_router.include_router(payapp.router)

api_router.include_router(admin.router, prefix="/admin")

# app/routers/shortlink.py

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from app.dependencies import get_db
from app.services import shortlink as shortlink_service

# Подключается без префикса /api: короткий адрес вида {домен}/p/{code}
router = APIRouter(tags=["Short Links"])


@router.get("/p/{code}", include_in_schema=False)
def follow_short_link(code: str, db: Session = Depends(get_db)):
    url = shortlink_service.resolve_short_link(db, code)
    return RedirectResponse(url=url, status_code=307)

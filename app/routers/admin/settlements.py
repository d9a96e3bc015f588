# app/routers/admin/settlements.py

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.dependencies import get_db
from app.schemas.settlement import SettlementSummary
from app.services import settlement as settlement_service

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/export")
def export_settlement(
    period: str = Query(..., description="YYYY-MM"),
    profile_id: Optional[int] = Query(None, alias="profileId"),
    profile_type: Optional[Literal["BRANCH_MANAGER", "SALES_AGENT"]] = Query(None, alias="profileType"),
    db: Session = Depends(get_db)
):
    """Excel с тремя листами: головной офис, начальники филиалов, продавцы."""
    output = settlement_service.export_settlement(db, period, profile_id, profile_type)
    filename = f"settlement_{period}.xlsx"
    return StreamingResponse(
        output,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/summary", response_model=SettlementSummary)
def get_settlement_summary(period: str = Query(..., description="YYYY-MM"), db: Session = Depends(get_db)):
    return settlement_service.get_summary(db, period)

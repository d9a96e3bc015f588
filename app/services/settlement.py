# app/services/settlement.py

import logging
from dataclasses import dataclass
from io import BytesIO

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from app.crud import sale as crud_sale
from app.models.sale import AffiliateSale, CommissionLedger
from app.schemas.settlement import SettlementProfileTotal, SettlementSummary
from app.services.commission import ENTRY_BRANCH, ENTRY_HQ, ENTRY_OVERRIDE, ENTRY_SALES
from app.utils.dates import as_utc, month_range

logger = logging.getLogger(__name__)

SHEET_HQ = "본사"
SHEET_MANAGERS = "대리점장"
SHEET_AGENTS = "판매원"

HEADERS = ["판매 ID", "확정일", "파트너", "상품", "판매 금액", "수당", "원천징수", "실지급액"]
ENTRY_LABELS = {
    ENTRY_HQ: "본사 순수익",
    ENTRY_BRANCH: "대리점 수당",
    ENTRY_OVERRIDE: "오버라이드",
    ENTRY_SALES: "판매 수당",
}


@dataclass
class SettlementRow:
    sale: AffiliateSale
    entry: CommissionLedger

    @property
    def partner(self) -> str:
        profile = self.entry.profile
        if profile is None:
            return SHEET_HQ
        return f"{profile.display_name or ''} ({profile.affiliate_code})"

    @property
    def net_payout(self) -> int:
        return self.entry.amount - self.entry.withholding_amount

    def as_list(self) -> list:
        confirmed_at = as_utc(self.sale.confirmed_at)
        product = self.sale.product.title if self.sale.product else ""
        return [
            self.sale.id,
            confirmed_at.strftime("%Y-%m-%d") if confirmed_at else "",
            self.partner,
            f"{product} / {ENTRY_LABELS.get(self.entry.entry_type, self.entry.entry_type)}",
            self.sale.sale_amount,
            self.entry.amount,
            self.entry.withholding_amount,
            self.net_payout,
        ]


def _sheet_for(entry: CommissionLedger) -> str:
    if entry.entry_type == ENTRY_HQ:
        return SHEET_HQ
    if entry.entry_type == ENTRY_SALES:
        return SHEET_AGENTS
    return SHEET_MANAGERS


def collect_rows(
    db: Session, period: str, profile_id: int | None = None, profile_type: str | None = None
) -> dict[str, list[SettlementRow]]:
    """
    Строки отчета по подтвержденным в месяце продажам, разложенные по листам.
    Фильтр по партнеру убирает долю головного офиса.
    """
    date_from, date_to = month_range(period)
    sheets = {SHEET_HQ: [], SHEET_MANAGERS: [], SHEET_AGENTS: []}
    for sale in crud_sale.get_confirmed_sales_in_range(db, date_from, date_to):
        for entry in sorted(sale.ledgers, key=lambda e: e.id):
            if profile_id is not None and entry.profile_id != profile_id:
                continue
            if profile_type is not None and (entry.profile is None or entry.profile.type != profile_type):
                continue
            sheets[_sheet_for(entry)].append(SettlementRow(sale=sale, entry=entry))
    return sheets


def _write_sheet(ws, rows: list[SettlementRow]) -> None:
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")

    for col, header in enumerate(HEADERS, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment

    for row_num, row in enumerate(rows, 2):
        for col_num, value in enumerate(row.as_list(), 1):
            ws.cell(row=row_num, column=col_num, value=value)

    total_row = len(rows) + 2
    ws.cell(row=total_row, column=1, value="합계").font = Font(bold=True)
    totals = [
        sum(r.sale.sale_amount for r in rows),
        sum(r.entry.amount for r in rows),
        sum(r.entry.withholding_amount for r in rows),
        sum(r.net_payout for r in rows),
    ]
    for offset, value in enumerate(totals):
        cell = ws.cell(row=total_row, column=5 + offset, value=value)
        cell.font = Font(bold=True)

    for col in range(5, len(HEADERS) + 1):
        for cells in ws.iter_cols(min_col=col, max_col=col, min_row=2, max_row=total_row):
            for cell in cells:
                cell.number_format = "#,##0"
    for col, width in enumerate([10, 12, 30, 36, 14, 14, 12, 14], 1):
        ws.column_dimensions[get_column_letter(col)].width = width


def build_workbook(sheets: dict[str, list[SettlementRow]]) -> BytesIO:
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for title in (SHEET_HQ, SHEET_MANAGERS, SHEET_AGENTS):
        _write_sheet(wb.create_sheet(title=title), sheets[title])
    output = BytesIO()
    wb.save(output)
    output.seek(0)
    return output


def export_settlement(
    db: Session, period: str, profile_id: int | None = None, profile_type: str | None = None
) -> BytesIO:
    sheets = collect_rows(db, period, profile_id, profile_type)
    logger.info(
        f"Settlement export {period}: "
        + ", ".join(f"{title}={len(rows)}" for title, rows in sheets.items())
    )
    return build_workbook(sheets)


def get_summary(db: Session, period: str) -> SettlementSummary:
    """Итоги по партнерам за месяц в JSON, для экрана перед выгрузкой."""
    sheets = collect_rows(db, period)
    hq_total = sum(r.entry.amount for r in sheets[SHEET_HQ])

    totals: dict[int, dict] = {}
    sale_ids: dict[int, set] = {}
    for row in sheets[SHEET_MANAGERS] + sheets[SHEET_AGENTS]:
        profile = row.entry.profile
        item = totals.setdefault(profile.id, {
            "profile_id": profile.id,
            "profile_type": profile.type,
            "display_name": profile.display_name,
            "affiliate_code": profile.affiliate_code,
            "sale_amount": 0,
            "commission": 0,
            "withholding": 0,
        })
        if row.sale.id not in sale_ids.setdefault(profile.id, set()):
            sale_ids[profile.id].add(row.sale.id)
            item["sale_amount"] += row.sale.sale_amount
        item["commission"] += row.entry.amount
        item["withholding"] += row.entry.withholding_amount

    partners = [
        SettlementProfileTotal(
            **item,
            sale_count=len(sale_ids[pid]),
            net_payout=item["commission"] - item["withholding"],
        )
        for pid, item in sorted(totals.items())
    ]
    return SettlementSummary(period=period, hq_total=hq_total, partners=partners)

# app/schemas/dashboard.py
from datetime import datetime
from typing import Dict, List, Optional

from app.schemas.common import CamelModel


class AdminDashboard(CamelModel):
    ok: bool = True
    total_users: int
    partners_by_type: Dict[str, int]
    contracts_by_status: Dict[str, int]
    leads_by_status: Dict[str, int]
    sales_by_status: Dict[str, int]
    confirmed_revenue_this_month: int
    open_adjustments: int
    generated_at: datetime


class DashboardLead(CamelModel):
    id: int
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    status: str
    created_at: datetime


class DashboardSale(CamelModel):
    id: int
    sale_amount: int
    status: str
    sale_date: Optional[datetime] = None
    product_code: Optional[str] = None


class MonthlySales(CamelModel):
    month: str
    count: int
    total_amount: int


class PartnerDashboardStats(CamelModel):
    ok: bool = True
    total_links: int
    total_leads: int
    total_sales: int
    team_members: int = 0
    recent_leads: List[DashboardLead]
    recent_sales: List[DashboardSale]
    monthly_sales: List[MonthlySales]
    current_month: str
    selected_month: str

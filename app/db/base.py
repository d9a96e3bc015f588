# app/db/base.py
# Импортирует все модели, чтобы Base.metadata знала о каждой таблице
# (нужно Alembic, тестам и разрешению строковых relationship).

from app.db.session import Base  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.affiliate import AffiliateProfile, AffiliateRelation  # noqa: F401
from app.models.contract import AffiliateContract  # noqa: F401
from app.models.lead import AffiliateLead, AffiliateInteraction  # noqa: F401
from app.models.product import CruiseProduct, AffiliateProduct, AffiliateProductTier  # noqa: F401
from app.models.link import AffiliateLink, ShortLink  # noqa: F401
from app.models.sale import AffiliateSale, CommissionLedger, CommissionAdjustment  # noqa: F401
from app.models.payment import Payment  # noqa: F401
from app.models.chatbot import ChatBotFlow, ChatBotQuestion  # noqa: F401
from app.models.landing import LandingPage, LandingPageRegistration  # noqa: F401
from app.models.marketing import MarketingCustomer  # noqa: F401
from app.models.audit import AdminActionLog  # noqa: F401
from app.models.notification import Notification  # noqa: F401

# tests/conftest.py
import os
import tempfile

# Настройки читаются при импорте app, поэтому окружение задаем до него
os.environ.setdefault("DATABASE_USER", "test")
os.environ.setdefault("DATABASE_PASSWORD", "test")
os.environ.setdefault("DATABASE_HOST", "localhost")
os.environ.setdefault("DATABASE_PORT", "5432")
os.environ.setdefault("DATABASE_NAME", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("REDIS_PORT", "6379")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:TEST-TOKEN-abcdefghijklmnopqrstuvwxyz")
os.environ.setdefault("ADMIN_CHAT_ID", "1000")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="affiliate-uploads-"))
os.environ.setdefault("PAYAPP_USERID", "cruise-seller")
os.environ.setdefault("PAYAPP_LINKKEY", "test-linkkey")
os.environ.setdefault("PAYAPP_LINKVAL", "test-linkval")

import pytest
from unittest.mock import AsyncMock, MagicMock
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.db.base import Base  # Импортирует все модели для создания таблиц
from app.core.security import create_access_token
from app.dependencies import get_db
from app.main import app
from app.models.affiliate import AffiliateProfile, AffiliateRelation
from app.models.user import User

# Используем in-memory SQLite для тестов - это быстро и изолированно.
# StaticPool: одно соединение на все сессии, иначе каждая увидит пустую базу
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Фикстура для создания чистой базы данных для каждого теста.
    """
    Base.metadata.create_all(bind=engine)  # Создаем все таблицы
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)  # Очищаем все после теста


async def _empty_scan(*args, **kwargs):
    return
    yield


@pytest.fixture(autouse=True)
def mock_redis(mocker) -> MagicMock:
    """Redis в тестах не нужен: кеш всегда пуст, запись и удаление ничего не делают."""
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=0)
    client.scan_iter = MagicMock(side_effect=_empty_scan)
    mocker.patch("app.core.redis.redis_client", client)
    return client


@pytest.fixture(autouse=True)
def mock_bot(mocker) -> MagicMock:
    """Уведомления в Telegram уходят в мок."""
    bot = MagicMock()
    bot.send_message = AsyncMock()
    mocker.patch("app.bot.services.notification.bot", bot)
    return bot


@pytest.fixture
async def client(db_session: Session) -> AsyncClient:
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db_session: Session) -> User:
    user = User(name="관리자", phone="010-0000-0000", mall_user_id="admin", role="admin")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


def make_partner(db: Session, login: str, name: str, phone: str, type: str) -> AffiliateProfile:
    user = User(name=name, phone=phone, mall_user_id=login, mall_nickname=name, role="community")
    db.add(user)
    db.flush()
    profile = AffiliateProfile(
        user_id=user.id,
        type=type,
        affiliate_code=f"{login.upper()}-CODE",
        display_name=name,
        status="ACTIVE",
        contract_status="SIGNED",
        withholding_rate=3.3,
        landing_slug=login,
        published=True,
    )
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def manager_profile(db_session: Session) -> AffiliateProfile:
    return make_partner(db_session, "boss1", "김대리", "010-1111-1111", "BRANCH_MANAGER")


@pytest.fixture
def agent_profile(db_session: Session, manager_profile: AffiliateProfile) -> AffiliateProfile:
    profile = make_partner(db_session, "user1", "이판매", "010-2222-2222", "SALES_AGENT")
    db_session.add(AffiliateRelation(manager_id=manager_profile.id, agent_id=profile.id, status="ACTIVE"))
    db_session.commit()
    return profile


@pytest.fixture
def manager_auth_headers(manager_profile: AffiliateProfile) -> dict:
    return auth_headers_for(manager_profile.user)


@pytest.fixture
def agent_auth_headers(agent_profile: AffiliateProfile) -> dict:
    return auth_headers_for(agent_profile.user)

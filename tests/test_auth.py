# tests/test_auth.py

from httpx import AsyncClient

from app.core.security import create_access_token, get_password_hash, verify_password
from app.models.user import User


def create_login_user(db_session, login="boss7", phone="010-7777-7777", password="1101", **kwargs) -> User:
    user = User(
        name="박대리", phone=phone, mall_user_id=login,
        password_hash=get_password_hash(password), **kwargs
    )
    db_session.add(user)
    db_session.commit()
    return user


async def test_login_by_partner_id(client: AsyncClient, db_session):
    create_login_user(db_session)

    response = await client.post("/api/auth/login", json={"login": "BOSS7", "password": "1101"})

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["token_type"] == "bearer"
    assert data["access_token"]


async def test_login_by_phone_digits(client: AsyncClient, db_session):
    # В базе номер с дефисами, на входе только цифры
    create_login_user(db_session)

    response = await client.post("/api/auth/login", json={"login": "01077777777", "password": "1101"})

    assert response.status_code == 200


async def test_login_wrong_password_returns_401(client: AsyncClient, db_session):
    create_login_user(db_session)

    response = await client.post("/api/auth/login", json={"login": "boss7", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["ok"] is False


async def test_login_blocked_user_returns_403(client: AsyncClient, db_session):
    create_login_user(db_session, is_blocked=True)

    response = await client.post("/api/auth/login", json={"login": "boss7", "password": "1101"})

    assert response.status_code == 403


async def test_me_requires_token(client: AsyncClient, db_session):
    response = await client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json() == {"ok": False, "message": "로그인이 필요합니다."}


async def test_me_includes_partner_profile(client: AsyncClient, manager_profile, manager_auth_headers):
    response = await client.get("/api/auth/me", headers=manager_auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["mallUserId"] == "boss1"
    assert data["affiliateProfile"]["type"] == "BRANCH_MANAGER"


async def test_change_password(client: AsyncClient, db_session):
    user = create_login_user(db_session)

    response = await client.patch(
        "/api/partner/password",
        json={"currentPassword": "1101", "newPassword": "new-pass"},
        headers={"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"},
    )

    assert response.status_code == 200
    db_session.refresh(user)
    assert verify_password("new-pass", user.password_hash)


async def test_non_admin_cannot_open_admin_routes(client: AsyncClient, manager_auth_headers):
    response = await client.get("/api/admin/affiliate/contracts", headers=manager_auth_headers)

    assert response.status_code == 403

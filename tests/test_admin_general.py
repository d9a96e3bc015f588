# tests/test_admin_general.py

from unittest.mock import AsyncMock, MagicMock

from httpx import AsyncClient

from app.crud import audit as crud_audit
from app.tasks_registry import TASKS


async def test_tasks_list(client: AsyncClient, admin_auth_headers):
    response = await client.get("/api/admin/tasks", headers=admin_auth_headers)

    assert response.status_code == 200
    names = {task["task_name"] for task in response.json()}
    assert names == set(TASKS)


async def test_run_single_task(client: AsyncClient, admin_auth_headers, mocker):
    task = MagicMock()
    mocker.patch.dict(TASKS["cleanup_affiliate_links"], {"function": task})

    response = await client.post(
        "/api/admin/tasks/run", json={"task_name": "cleanup_affiliate_links"}, headers=admin_auth_headers
    )

    assert response.status_code == 202
    assert response.json()["status"] == "accepted"
    task.assert_called_once()


async def test_run_unknown_task_is_rejected(client: AsyncClient, admin_auth_headers):
    response = await client.post(
        "/api/admin/tasks/run", json={"task_name": "drop_everything"}, headers=admin_auth_headers
    )

    assert response.status_code == 400
    assert response.json()["ok"] is False


async def test_cache_clear(client: AsyncClient, admin_auth_headers, mock_redis):
    async def keys(match=None):
        yield f"{match[:-1]}1"

    mock_redis.scan_iter.side_effect = keys
    mock_redis.delete = AsyncMock(return_value=1)

    response = await client.post("/api/admin/cache/clear", headers=admin_auth_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "2개의 캐시가 삭제되었습니다."
    assert mock_redis.delete.await_count == 2


async def test_audit_logs_filter_by_action(client: AsyncClient, db_session, admin_user, admin_auth_headers):
    crud_audit.log_action(db_session, admin_user.id, "affiliate.contract.approved", target_type="contract", target_id=1)
    crud_audit.log_action(db_session, admin_user.id, "affiliate.product.created", target_type="product", target_id=2)
    db_session.commit()

    response = await client.get(
        "/api/admin/audit-logs", params={"action": "affiliate.product.created"}, headers=admin_auth_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["totalItems"] == 1
    assert data["items"][0]["targetType"] == "product"
    assert data["items"][0]["adminId"] == admin_user.id

"""
Tests for role administration endpoints.
"""

from uuid import uuid4

import pytest
from httpx import AsyncClient

from conservatory.services.roles import RoleService

PRACTICE = "PRACTICE:ACCESS:ANY"


@pytest.mark.asyncio
async def test_roles_require_authentication(client: AsyncClient, roles):
    response = await client.get("/api/admin/roles")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Authentication required."}


@pytest.mark.asyncio
async def test_mutation_requires_authentication_without_leaking(client: AsyncClient, roles):
    response = await client.put(
        f"/api/admin/roles/{roles['TEACHER'].id}/permissions",
        json={"permissions": []},
    )

    assert response.status_code == 401
    assert "required" not in response.json()


@pytest.mark.asyncio
async def test_roles_require_admin_role(client: AsyncClient, teacher_headers):
    response = await client.get("/api/admin/roles", headers=teacher_headers)

    assert response.status_code == 403
    body = response.json()
    assert body["success"] is False
    assert body["required"] == ["ADMIN"]


@pytest.mark.asyncio
async def test_list_roles(client: AsyncClient, admin_headers):
    response = await client.get("/api/admin/roles", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [r["name"] for r in body["data"]] == ["ADMIN", "GUEST", "STUDENT", "TEACHER"]
    assert "permissionCount" in body["data"][0]


@pytest.mark.asyncio
async def test_get_role(client: AsyncClient, admin_headers, roles):
    response = await client.get(f"/api/admin/roles/{roles['GUEST'].id}", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "GUEST"
    assert data["userCount"] == 0


@pytest.mark.asyncio
async def test_get_missing_role(client: AsyncClient, admin_headers):
    role_id = uuid4()
    response = await client.get(f"/api/admin/roles/{role_id}", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["message"] == f"Role with ID {role_id} not found"


@pytest.mark.asyncio
async def test_get_role_by_name(client: AsyncClient, admin_headers):
    response = await client.get("/api/admin/roles/name/teacher", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"]["name"] == "TEACHER"


@pytest.mark.asyncio
async def test_role_stats(client: AsyncClient, admin_headers, user_factory):
    await user_factory.create(role="STUDENT")

    response = await client.get("/api/admin/roles/stats", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 2
    assert {d["role"]: d["percentage"] for d in data["distribution"]} == {
        "ADMIN": 50,
        "STUDENT": 50,
    }


@pytest.mark.asyncio
async def test_replace_permissions(client: AsyncClient, admin_headers, roles, audit):
    role = roles["GUEST"]

    response = await client.put(
        f"/api/admin/roles/{role.id}/permissions",
        json={"permissions": [PRACTICE, "HOLIDAY:READ:ANY"]},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Role permissions updated"
    assert body["data"]["permissions"] == ["HOLIDAY:READ:ANY", PRACTICE]

    await audit.drain()
    history = await audit.get_entity_history("Role", role.id)
    assert [log.action for log in history] == ["ROLE_CHANGED"]


@pytest.mark.asyncio
async def test_replace_permissions_with_unknown_names(client: AsyncClient, admin_headers, roles):
    response = await client.put(
        f"/api/admin/roles/{roles['GUEST'].id}/permissions",
        json={"permissions": ["FAKE:PERMISSION:ANY"]},
        headers=admin_headers,
    )

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid permissions: FAKE:PERMISSION:ANY"
    assert body["invalid"] == ["FAKE:PERMISSION:ANY"]


@pytest.mark.asyncio
async def test_replace_permissions_malformed_body(client: AsyncClient, admin_headers, roles):
    response = await client.put(
        f"/api/admin/roles/{roles['GUEST'].id}/permissions",
        json={"permissions": "STUDENT:READ:ANY"},
        headers=admin_headers,
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["errors"]


@pytest.mark.asyncio
async def test_add_and_remove_permission(client: AsyncClient, admin_headers, roles, audit):
    role = roles["GUEST"]

    response = await client.post(
        f"/api/admin/roles/{role.id}/permissions",
        json={"permission": PRACTICE},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Permission added to role"
    assert PRACTICE in response.json()["data"]["permissions"]

    response = await client.delete(
        f"/api/admin/roles/{role.id}/permissions/{PRACTICE}",
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Permission removed from role"
    assert PRACTICE not in response.json()["data"]["permissions"]

    await audit.drain()
    assert len(await audit.get_entity_history("Role", role.id)) == 2


@pytest.mark.asyncio
async def test_mutation_requires_role_assign(
    client: AsyncClient,
    db,
    audit,
    roles,
    user_factory,
    auth_headers_for,
):
    await RoleService(db, audit).remove_permission(roles["ADMIN"].id, "ROLE:ASSIGN:ANY")
    await audit.drain()
    limited_admin = await user_factory.create(role="ADMIN")

    response = await client.post(
        f"/api/admin/roles/{roles['GUEST'].id}/permissions",
        json={"permission": PRACTICE},
        headers=auth_headers_for(limited_admin),
    )

    assert response.status_code == 403
    assert response.json()["required"] == "ROLE:ASSIGN:ANY"

    # Reads only need the admin role
    response = await client.get("/api/admin/roles", headers=auth_headers_for(limited_admin))
    assert response.status_code == 200

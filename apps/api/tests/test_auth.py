"""
Tests for authentication and identity resolution.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from jose import jwt
from sqlalchemy import select

from conservatory.core.config import settings
from conservatory.models.audit_log import AuditLog
from conservatory.services.roles import RoleService
from conservatory.utils.timezone import utc_now


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, user_factory, audit):
    """Test successful login."""
    password = "testpassword123"
    user = await user_factory.create(email="login@example.com", password=password, role="TEACHER")

    response = await client.post(
        "/api/auth/login",
        json={"email": user.email, "password": password},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["tokenType"] == "bearer"

    payload = jwt.decode(
        data["accessToken"],
        settings.auth.secret_key,
        algorithms=[settings.auth.algorithm],
    )
    assert payload["sub"] == str(user.id)
    assert payload["role"] == "TEACHER"
    assert payload["permissions"] == user.role.permission_names
    assert payload["token_version"] == 0

    actions = await audit.get_user_actions(user.id)
    assert [log.action for log in actions] == ["LOGIN_SUCCESS"]


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, user_factory, audit):
    """Test login with wrong password fails."""
    user = await user_factory.create(email="wrong@example.com")

    response = await client.post(
        "/api/auth/login",
        json={"email": user.email, "password": "wrongpassword"},
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"

    await audit.drain()
    failures = await audit.query()
    assert [(log.action, log.severity) for log in failures.logs] == [("LOGIN_FAILED", "WARNING")]


@pytest.mark.asyncio
async def test_login_unknown_email(client: AsyncClient, roles):
    response = await client.post(
        "/api/auth/login",
        json={"email": "nobody@example.com", "password": "whatever"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_rejects_archived_and_inactive(client: AsyncClient, user_factory, status_factory):
    archived = await user_factory.create(archived=True)
    held = await user_factory.create(status=await status_factory.create("HOLD"))

    for user in (archived, held):
        response = await client.post(
            "/api/auth/login",
            json={"email": user.email, "password": "testpassword123"},
        )
        assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_invalid_body(client: AsyncClient):
    response = await client.post("/api/auth/login", json={"email": "not-an-email"})

    assert response.status_code == 400
    assert response.json()["errors"]


@pytest.mark.asyncio
async def test_me(client: AsyncClient, student_user, student_headers):
    response = await client.get("/api/auth/me", headers=student_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == str(student_user.id)
    assert data["role"] == "STUDENT"
    assert data["permissions"] == student_user.role.permission_names


@pytest.mark.asyncio
async def test_me_requires_token(client: AsyncClient):
    response = await client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_invalid_token(client: AsyncClient, roles):
    response = await client.get(
        "/api/auth/me",
        headers={"Authorization": "Bearer not-a-token"},
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_expired_token(client: AsyncClient, student_user):
    token = jwt.encode(
        {
            "sub": str(student_user.id),
            "role": "STUDENT",
            "permissions": student_user.role.permission_names,
            "token_version": 0,
            "exp": utc_now() - timedelta(minutes=1),
            "type": "access",
        },
        settings.auth.secret_key,
        algorithm=settings.auth.algorithm,
    )

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_rejected_after_role_change(
    client: AsyncClient,
    db,
    audit,
    teacher_user,
    teacher_headers,
):
    """A token minted before the role's permissions changed is stale."""
    await RoleService(db, audit).add_permission(teacher_user.role_id, "REPORT:GENERATE:ANY")
    await audit.drain()
    await db.commit()

    response = await client.get("/api/auth/me", headers=teacher_headers)

    assert response.status_code == 401
    assert response.json()["message"] == "Permissions have changed. Please login again."


@pytest.mark.asyncio
async def test_token_rejected_after_archive(client: AsyncClient, db, student_user, student_headers):
    student_user.deleted_at = utc_now()
    await db.commit()

    response = await client.get("/api/auth/me", headers=student_headers)

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_rejected_after_version_bump(client: AsyncClient, db, student_user, student_headers):
    student_user.token_version += 1
    await db.commit()

    response = await client.get("/api/auth/me", headers=student_headers)

    assert response.status_code == 401
    assert response.json()["message"] == "Session has expired. Please login again."


@pytest.mark.asyncio
async def test_activity_of_self(client: AsyncClient, student_user, student_headers, audit):
    await client.post(
        "/api/auth/login",
        json={"email": student_user.email, "password": "testpassword123"},
    )

    response = await client.get(
        f"/api/users/{student_user.id}/activity",
        headers=student_headers,
    )

    assert response.status_code == 200
    assert [log["action"] for log in response.json()["data"]] == ["LOGIN_SUCCESS"]


@pytest.mark.asyncio
async def test_activity_of_other_user_forbidden(client: AsyncClient, admin_user, student_headers):
    response = await client.get(
        f"/api/users/{admin_user.id}/activity",
        headers=student_headers,
    )

    assert response.status_code == 403
    assert response.json()["message"] == "You can only access your own resources."


@pytest.mark.asyncio
async def test_activity_of_other_user_with_override(client: AsyncClient, student_user, admin_headers):
    response = await client.get(
        f"/api/users/{student_user.id}/activity",
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["data"] == []


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "abc-123"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "abc-123"


@pytest.mark.asyncio
async def test_login_audit_carries_request_metadata(client: AsyncClient, user_factory, db):
    user = await user_factory.create(email="meta@example.com")

    await client.post(
        "/api/auth/login",
        json={"email": user.email, "password": "testpassword123"},
        headers={"X-Request-ID": "login-req", "User-Agent": "pytest-agent"},
    )

    result = await db.execute(select(AuditLog).where(AuditLog.action == "LOGIN_SUCCESS"))
    log = result.scalar_one()
    assert log.request_id == "login-req"
    assert log.user_agent == "pytest-agent"


@pytest.mark.asyncio
async def test_activity_of_self_with_uppercase_id(client: AsyncClient, student_user, student_headers):
    response = await client.get(
        f"/api/users/{str(student_user.id).upper()}/activity",
        headers=student_headers,
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_token_rejected_after_status_change(
    client: AsyncClient,
    db,
    audit,
    system_service,
    user_factory,
    status_factory,
    auth_headers_for,
):
    active = await status_factory.create("ACTIVE")
    blocked = await status_factory.create("BLOCKED")
    user = await user_factory.create(status=active)
    headers = auth_headers_for(user)

    assert (await client.get("/api/auth/me", headers=headers)).status_code == 200

    await system_service.bulk_update_user_status([user.id], blocked.id)
    await audit.drain()
    await db.commit()

    response = await client.get("/api/auth/me", headers=headers)

    assert response.status_code == 403
    assert response.json()["message"] == "Account is BLOCKED. Please contact administrator."


@pytest.mark.asyncio
async def test_token_rejected_when_role_deactivated(
    client: AsyncClient,
    db,
    role_factory,
    user_factory,
    auth_headers_for,
):
    role = await role_factory.create("TUTOR", permissions=("HOLIDAY:READ:ANY",))
    user = await user_factory.create(role=role)
    headers = auth_headers_for(user)

    role.is_active = False
    await db.commit()

    response = await client.get("/api/auth/me", headers=headers)

    assert response.status_code == 403
    assert response.json()["message"] == "User role is inactive or missing."

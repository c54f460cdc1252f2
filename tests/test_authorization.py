"""
Authorization gate tests: the role a request acts with is the one in the
store at request time, not the one embedded in the access token.
"""
import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from newsroom.database import get_db
from newsroom.dependencies import Identity, get_optional_identity, require_roles
from newsroom.errors import register_exception_handlers
from newsroom.models import Role, User
from newsroom.security import sign_access
from tests.conftest import test_database

ARTICLE = {"title": "Budget session opens", "content": "Parliament convened this morning."}


def _access_cookie_for(user: User, role: Role | None = None) -> str:
    return sign_access(
        {"user_id": user.id, "role": (role or user.role).value, "email": user.email}
    )


@pytest.mark.asyncio
async def test_demoted_editor_is_rejected_mid_session(client_factory, login_as):
    editor_client, admin_client = client_factory(), client_factory()
    editor = await login_as(Role.EDITOR, client=editor_client)
    await login_as(Role.ADMIN, client=admin_client)

    created = await editor_client.post("/api/articles", json=ARTICLE)
    assert created.status_code == 201
    article_id = created.json()["article"]["id"]

    ok = await editor_client.patch(
        f"/api/articles/status/{article_id}", json={"status": "PUBLISHED"}
    )
    assert ok.status_code == 200

    demote = await admin_client.patch(f"/api/admin/users/{editor.id}/role", json={"role": "USER"})
    assert demote.status_code == 200
    assert demote.json()["user"]["role"] == "USER"

    # Same, still-valid access cookie; the stored role is now USER.
    resp = await editor_client.patch(
        f"/api/articles/status/{article_id}", json={"status": "ARCHIVED"}
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "Access denied: insufficient permissions"


@pytest.mark.asyncio
async def test_promoted_user_gains_access_without_new_token(client_factory, login_as):
    user_client, admin_client = client_factory(), client_factory()
    user = await login_as(Role.USER, client=user_client)
    await login_as(Role.ADMIN, client=admin_client)

    assert (await user_client.post("/api/articles", json=ARTICLE)).status_code == 403

    await admin_client.patch(f"/api/admin/users/{user.id}/role", json={"role": "REPORTER"})
    assert (await user_client.post("/api/articles", json=ARTICLE)).status_code == 201


@pytest.mark.asyncio
async def test_forged_role_claim_does_not_grant_access(client_factory, make_user):
    user = await make_user("plain@example.com", role=Role.USER)
    client = client_factory()
    client.cookies.set("access_token", _access_cookie_for(user, role=Role.ADMIN))

    resp = await client.get("/api/admin/users")
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_gate_requires_authentication(async_client: AsyncClient):
    resp = await async_client.get("/api/admin/users")
    assert resp.status_code == 401
    assert resp.json()["message"] == "Authorization token missing"


@pytest.mark.asyncio
async def test_gate_rejects_garbage_token(client_factory):
    client = client_factory()
    client.cookies.set("access_token", "garbage")
    resp = await client.get("/api/admin/users")
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_gate_rejects_token_of_deleted_user(client_factory, make_user):
    user = await make_user("gone@example.com", role=Role.ADMIN)
    client = client_factory()
    client.cookies.set("access_token", _access_cookie_for(user))

    async with test_database.session() as session:
        await session.delete(await session.get(User, user.id))

    resp = await client.get("/api/admin/users")
    assert resp.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "role, expected",
    [(Role.USER, 403), (Role.REPORTER, 403), (Role.EDITOR, 403), (Role.ADMIN, 200)],
)
async def test_admin_routes_by_role(async_client: AsyncClient, login_as, role, expected):
    await login_as(role)
    resp = await async_client.get("/api/admin/users")
    assert resp.status_code == expected


@pytest.mark.asyncio
async def test_require_roles_returns_fresh_identity(make_user):
    """The Identity handed to the route carries the stored role and email."""
    user = await make_user("fresh@example.com", role=Role.EDITOR)

    gate_app = FastAPI()
    gate_app.state.database = test_database
    register_exception_handlers(gate_app)

    @gate_app.get("/whoami")
    async def whoami(identity: Identity = Depends(require_roles(Role.EDITOR))):
        return {"user_id": identity.user_id, "role": identity.role.value, "email": identity.email}

    @gate_app.get("/maybe")
    async def maybe(identity=Depends(get_optional_identity), db=Depends(get_db)):
        return {"guest": identity is None}

    async with AsyncClient(transport=ASGITransport(app=gate_app), base_url="http://test") as client:
        assert (await client.get("/maybe")).json() == {"guest": True}

        client.cookies.set("access_token", _access_cookie_for(user, role=Role.USER))
        resp = await client.get("/whoami")
        assert resp.status_code == 200
        assert resp.json() == {"user_id": user.id, "role": "EDITOR", "email": "fresh@example.com"}
        assert (await client.get("/maybe")).json() == {"guest": False}

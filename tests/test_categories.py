"""Category endpoint tests: tree reads, ordering, and soft deletion."""
import pytest
from httpx import AsyncClient

from newsroom.models import Role


async def _create(client: AsyncClient, name: str, parent_id: int | None = None) -> dict:
    payload = {"name": name}
    if parent_id is not None:
        payload["parent_id"] = parent_id
    resp = await client.post("/api/categories", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["category"]


@pytest.mark.asyncio
async def test_create_category(async_client: AsyncClient, login_as):
    await login_as(Role.REPORTER)
    category = await _create(async_client, "Science and Technology")
    assert category["slug"] == "science-and-technology"
    assert category["is_active"] is True
    assert category["parent_id"] is None


@pytest.mark.asyncio
async def test_create_category_duplicate_name_gets_unique_slug(async_client: AsyncClient, login_as):
    await login_as(Role.EDITOR)
    first = await _create(async_client, "World")
    second = await _create(async_client, "World")
    assert first["slug"] == "world"
    assert second["slug"].startswith("world-")


@pytest.mark.asyncio
async def test_create_category_validation(async_client: AsyncClient, login_as):
    await login_as(Role.EDITOR)
    short = await async_client.post("/api/categories", json={"name": "X"})
    assert short.status_code == 400

    orphan = await async_client.post("/api/categories", json={"name": "Orphan", "parent_id": 42})
    assert orphan.status_code == 400
    assert orphan.json()["message"] == "Parent category not found"


@pytest.mark.asyncio
async def test_create_category_requires_staff(async_client: AsyncClient, login_as):
    assert (await async_client.post("/api/categories", json={"name": "News"})).status_code == 401
    await login_as(Role.USER)
    assert (await async_client.post("/api/categories", json={"name": "News"})).status_code == 403


@pytest.mark.asyncio
async def test_menu_order_and_children(async_client: AsyncClient, login_as):
    await login_as(Role.EDITOR)
    business = await _create(async_client, "Business")
    await _create(async_client, "Lifestyle")
    await _create(async_client, "General")
    politics = await _create(async_client, "Politics")
    await _create(async_client, "National", parent_id=politics["id"])
    retired = await _create(async_client, "Regional", parent_id=politics["id"])
    await async_client.delete(f"/api/categories/{retired['slug']}")

    resp = await async_client.get("/api/categories")
    assert resp.status_code == 200
    categories = resp.json()["categories"]
    assert [c["slug"] for c in categories] == ["general", "politics", "business", "lifestyle"]

    by_slug = {c["slug"]: c for c in categories}
    assert [child["slug"] for child in by_slug["politics"]["children"]] == ["national"]
    assert by_slug["business"]["id"] == business["id"]


@pytest.mark.asyncio
async def test_all_with_hierarchy(async_client: AsyncClient, login_as):
    await login_as(Role.EDITOR)
    parent = await _create(async_client, "Sports")
    await _create(async_client, "Football", parent_id=parent["id"])

    categories = (await async_client.get("/api/categories/all-with-hierarchy")).json()["categories"]
    by_slug = {c["slug"]: c for c in categories}
    assert by_slug["football"]["parent"] == {"id": parent["id"], "name": "Sports", "slug": "sports"}
    assert by_slug["sports"]["parent"] is None
    assert [c["slug"] for c in by_slug["sports"]["children"]] == ["football"]
    # Top-level categories come first.
    assert categories[0]["slug"] == "sports"


@pytest.mark.asyncio
async def test_get_category_by_slug_or_id(async_client: AsyncClient, login_as):
    await login_as(Role.EDITOR)
    category = await _create(async_client, "Health")

    by_slug = await async_client.get("/api/categories/health")
    by_id = await async_client.get(f"/api/categories/{category['id']}")
    assert by_slug.json()["category"]["id"] == by_id.json()["category"]["id"] == category["id"]

    assert (await async_client.get("/api/categories/missing")).status_code == 404


@pytest.mark.asyncio
async def test_update_category_regenerates_slug(async_client: AsyncClient, login_as):
    await login_as(Role.EDITOR)
    category = await _create(async_client, "Tech")
    resp = await async_client.put(
        f"/api/categories/{category['slug']}",
        json={"name": "Technology", "description": "Gadgets and software"},
    )
    assert resp.status_code == 200
    updated = resp.json()["category"]
    assert updated["slug"] == "technology"
    assert updated["description"] == "Gadgets and software"


@pytest.mark.asyncio
async def test_reporter_cannot_update_or_delete(client_factory, login_as):
    reporter = client_factory()
    await login_as(Role.REPORTER, client=reporter)
    category = await _create(reporter, "Opinion")

    assert (await reporter.put(f"/api/categories/{category['id']}", json={"name": "Views"})).status_code == 403
    assert (await reporter.delete(f"/api/categories/{category['id']}")).status_code == 403


@pytest.mark.asyncio
async def test_soft_delete_hides_category(async_client: AsyncClient, login_as):
    await login_as(Role.ADMIN)
    category = await _create(async_client, "Weather")

    resp = await async_client.delete(f"/api/categories/{category['id']}")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Category deleted (soft) successfully"

    assert (await async_client.get("/api/categories/weather")).status_code == 404
    assert (await async_client.get("/api/categories")).json()["categories"] == []

"""Bookmark endpoint tests."""
import pytest
from httpx import AsyncClient

from newsroom.models import Role


async def _article(client: AsyncClient, title: str = "Bookmarkable story") -> dict:
    resp = await client.post(
        "/api/articles", json={"title": title, "content": "Body text long enough to pass."}
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["article"]


@pytest.mark.asyncio
async def test_bookmark_lifecycle(async_client: AsyncClient, login_as):
    await login_as(Role.EDITOR)
    article = await _article(async_client)

    created = await async_client.post("/api/bookmarks", json={"article_id": article["id"]})
    assert created.status_code == 201
    assert created.json()["message"] == "Article bookmarked successfully"

    duplicate = await async_client.post("/api/bookmarks", json={"article_id": article["id"]})
    assert duplicate.status_code == 200
    assert duplicate.json()["message"] == "Article already bookmarked"

    found = await async_client.get(f"/api/bookmarks/{article['id']}")
    assert found.status_code == 200
    assert found.json()["bookmark"]["article_id"] == article["id"]

    removed = await async_client.request(
        "DELETE", "/api/bookmarks", json={"article_id": article["id"]}
    )
    assert removed.status_code == 200
    assert removed.json()["message"] == "Bookmark removed successfully"

    assert (await async_client.get(f"/api/bookmarks/{article['id']}")).status_code == 404
    gone = await async_client.request("DELETE", "/api/bookmarks", json={"article_id": article["id"]})
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_list_bookmarks_with_articles(async_client: AsyncClient, login_as):
    await login_as(Role.EDITOR)
    first = await _article(async_client, "First saved")
    second = await _article(async_client, "Second saved")
    await async_client.post("/api/bookmarks", json={"article_id": first["id"]})
    await async_client.post("/api/bookmarks", json={"article_id": second["id"]})

    resp = await async_client.get("/api/bookmarks")
    assert resp.status_code == 200
    data = resp.json()
    assert data["bookmark_count"] == 2
    assert {b["article"]["title"] for b in data["bookmarks"]} == {"First saved", "Second saved"}


@pytest.mark.asyncio
async def test_bookmarks_are_per_user(client_factory, login_as):
    editor, reader = client_factory(), client_factory()
    await login_as(Role.EDITOR, client=editor)
    await login_as(Role.USER, client=reader)
    article = await _article(editor)
    await editor.post("/api/bookmarks", json={"article_id": article["id"]})

    assert (await reader.get("/api/bookmarks")).json()["bookmark_count"] == 0
    assert (await reader.get(f"/api/bookmarks/{article['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_bookmark_missing_article(async_client: AsyncClient, login_as):
    await login_as(Role.USER)
    resp = await async_client.post("/api/bookmarks", json={"article_id": 9999})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_bookmarks_require_auth(async_client: AsyncClient):
    assert (await async_client.get("/api/bookmarks")).status_code == 401
    assert (await async_client.post("/api/bookmarks", json={"article_id": 1})).status_code == 401

"""
Comment endpoint tests: anonymous and authenticated comments.

Comments are append-only (no edit/delete endpoints), so the surface is
creation, listing and attribution.
"""
import pytest
from httpx import AsyncClient


async def _create_user_and_article(client: AsyncClient, suffix: str) -> tuple[int, int]:
    user_resp = await client.post("/api/v1/users", json={
        "name": f"User {suffix}",
        "email": f"user_{suffix}@example.com",
    })
    assert user_resp.status_code == 201
    user_id = user_resp.json()["id"]

    article_resp = await client.post("/api/v1/articles", json={
        "user_id": user_id,
        "title": f"Article for {suffix}",
        "content": "Article content",
    })
    assert article_resp.status_code == 201
    return user_id, article_resp.json()["id"]


@pytest.mark.asyncio
async def test_add_anonymous_comment(async_client: AsyncClient):
    _, article_id = await _create_user_and_article(async_client, "anon")

    resp = await async_client.post(
        f"/api/v1/articles/{article_id}/comments",
        json={"content": "Great article!", "author_name": "Reader"},
    )
    assert resp.status_code == 201
    comment = resp.json()
    assert comment["content"] == "Great article!"
    assert comment["author_name"] == "Reader"
    assert comment["user_id"] is None
    assert comment["article_id"] == article_id


@pytest.mark.asyncio
async def test_anonymous_comment_requires_author_name(async_client: AsyncClient):
    _, article_id = await _create_user_and_article(async_client, "noname")

    resp = await async_client.post(
        f"/api/v1/articles/{article_id}/comments",
        json={"content": "Who am I?"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_comment_requires_content(async_client: AsyncClient):
    _, article_id = await _create_user_and_article(async_client, "empty")

    resp = await async_client.post(
        f"/api/v1/articles/{article_id}/comments",
        json={"content": "", "author_name": "Reader"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_authenticated_comment_is_attributed_to_principal(async_client: AsyncClient, seed_token):
    commenter_id = await seed_token(name="Commenter", email="commenter@example.com", token="c-token")
    _, article_id = await _create_user_and_article(async_client, "authed")

    resp = await async_client.post(
        f"/api/v1/articles/{article_id}/comments",
        json={"content": "Signed comment", "author_name": "ignored"},
        headers={"Authorization": "Bearer c-token"},
    )
    assert resp.status_code == 201
    comment = resp.json()
    assert comment["user_id"] == commenter_id
    assert comment["author_name"] is None


@pytest.mark.asyncio
async def test_comment_with_invalid_token_is_rejected(async_client: AsyncClient):
    _, article_id = await _create_user_and_article(async_client, "badtoken")

    resp = await async_client.post(
        f"/api/v1/articles/{article_id}/comments",
        json={"content": "Hello", "author_name": "Reader"},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_comment_on_missing_article(async_client: AsyncClient):
    resp = await async_client.post(
        "/api/v1/articles/99999/comments",
        json={"content": "Orphan", "author_name": "Ghost"},
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_list_comments_in_creation_order(async_client: AsyncClient):
    _, article_id = await _create_user_and_article(async_client, "listing")
    for text in ("first", "second", "third"):
        resp = await async_client.post(
            f"/api/v1/articles/{article_id}/comments",
            json={"content": text, "author_name": "Reader"},
        )
        assert resp.status_code == 201

    resp = await async_client.get(f"/api/v1/articles/{article_id}/comments")
    assert resp.status_code == 200
    assert [c["content"] for c in resp.json()] == ["first", "second", "third"]


@pytest.mark.asyncio
async def test_list_comments_on_missing_article(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/articles/99999/comments")
    assert resp.status_code == 404

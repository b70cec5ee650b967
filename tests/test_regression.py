"""
Regression tests for cross-cutting behaviour.

1. Error payloads are structured ({"code", "message"}) for every status.
2. X-Query-Count / X-Response-Time-Ms headers are present and accurate.
3. CORS must not set allow_credentials=true with allow_origins=*.
4. Storage failures surface as 500 INTERNAL, not as a crash.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from cms.services import article_service


# ---------------------------------------------------------------------------
# 1. Structured error payloads
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize("method, path, body, status, code", [
    ("get", "/api/v1/articles/123", None, 404, "NOT_FOUND"),
    ("post", "/api/v1/articles", {"title": "x"}, 400, "INVALID_ARGUMENT"),
    ("delete", "/api/v1/articles/1", None, 401, "UNAUTHORIZED"),
    ("post", "/api/v1/auth/login", {"token": "nope"}, 401, "UNAUTHORIZED"),
])
async def test_error_payload_shape(async_client: AsyncClient, method, path, body, status, code):
    kwargs = {"json": body} if body is not None else {}
    resp = await async_client.request(method.upper(), path, **kwargs)
    assert resp.status_code == status
    payload = resp.json()
    assert payload["code"] == code
    assert isinstance(payload["message"], str) and payload["message"]


@pytest.mark.asyncio
async def test_malformed_json_body_is_400(async_client: AsyncClient):
    resp = await async_client.post(
        "/api/v1/articles",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# 2. Diagnostic headers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_query_count_header_for_article_list(async_client: AsyncClient):
    """Listing articles is a single SELECT when the cache is disabled."""
    resp = await async_client.get("/api/v1/articles")
    assert resp.status_code == 200
    assert int(resp.headers["x-query-count"]) == 1
    assert float(resp.headers["x-response-time-ms"]) >= 0


@pytest.mark.asyncio
async def test_query_count_header_resets_per_request(async_client: AsyncClient):
    first = await async_client.get("/api/v1/articles")
    second = await async_client.get("/api/v1/articles")
    assert first.headers["x-query-count"] == second.headers["x-query-count"]


# ---------------------------------------------------------------------------
# 3. CORS headers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cors_no_credentials_with_wildcard_origin(async_client: AsyncClient):
    resp = await async_client.options(
        "/api/v1/articles",
        headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "GET",
        },
    )
    cred_header = resp.headers.get("access-control-allow-credentials", "").lower()
    assert cred_header != "true"


# ---------------------------------------------------------------------------
# 4. Storage failures
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_storage_error_during_list_is_500(async_client: AsyncClient, monkeypatch):
    async def broken(db):
        raise OperationalError("SELECT articles", {}, Exception("connection reset"))

    monkeypatch.setattr(article_service, "list_articles", broken)
    resp = await async_client.get("/api/v1/articles")
    assert resp.status_code == 500
    assert resp.json() == {"code": "INTERNAL", "message": "Internal server error"}

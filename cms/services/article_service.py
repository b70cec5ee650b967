"""
Article service: lifecycle rules for the Article aggregate.

Design notes
------------
- An article is a *draft* while ``published_at`` is NULL and *published*
  once it is set.  Nothing in this module clears ``published_at``: an
  update that omits it keeps the current value.
- Validation runs before any row is touched, so a rejected create or
  update never leaves a partial write behind.
- ``updated_at`` is assigned explicitly on every successful update, even
  when no other column changed.  ``now`` parameters exist so callers
  (tests, batch tools) can pin the clock.
- Reads go through the cache-aside layer.  Every write queues an
  invalidation of the list caches and the affected detail entry; the
  queue runs after ``get_db`` commits, never before.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cms.cache import cache
from cms.config import settings
from cms.errors import InvalidArgumentError, NotFoundError
from cms.models import Article, User, as_utc, utcnow
from cms.schemas import ArticleWrite

# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------


def _iso(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


def _article_to_dict(article: Article) -> dict:
    return {
        "id": article.id,
        "user_id": article.user_id,
        "title": article.title,
        "content": article.content,
        "status": "published" if article.is_published else "draft",
        "published_at": _iso(article.published_at),
        "created_at": _iso(article.created_at),
        "updated_at": _iso(article.updated_at),
    }


# ---------------------------------------------------------------------------
# Rule helpers
# ---------------------------------------------------------------------------


def _validate(data: ArticleWrite) -> None:
    if data.user_id <= 0 or not data.title or not data.content:
        raise InvalidArgumentError("user_id, title and content are required")


async def _ensure_author(db: AsyncSession, user_id: int) -> None:
    if await db.get(User, user_id) is None:
        raise InvalidArgumentError(f"Author {user_id} does not exist")


async def _load(db: AsyncSession, article_id: int) -> Article:
    result = await db.execute(select(Article).where(Article.id == article_id))
    article = result.scalar_one_or_none()
    if article is None:
        raise NotFoundError("Article not found")
    return article


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


async def list_articles(db: AsyncSession) -> list[dict]:
    """Return every article, drafts included, ordered by id ascending."""
    cache_key = cache.article_list_key()
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    result = await db.execute(select(Article).order_by(Article.id))
    articles = [_article_to_dict(a) for a in result.scalars().all()]
    await cache.set(cache_key, articles, ttl=settings.CACHE_TTL_LIST)
    return articles


async def list_articles_by_user(db: AsyncSession, user_id: int) -> list[dict]:
    """Return the articles written by *user_id*, ordered by id ascending."""
    if await db.get(User, user_id) is None:
        raise NotFoundError("User not found")

    cache_key = cache.user_articles_key(user_id)
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    result = await db.execute(
        select(Article).where(Article.user_id == user_id).order_by(Article.id)
    )
    articles = [_article_to_dict(a) for a in result.scalars().all()]
    await cache.set(cache_key, articles, ttl=settings.CACHE_TTL_LIST)
    return articles


async def get_article(db: AsyncSession, article_id: int) -> dict:
    """Return the article dict for *article_id*; NotFoundError if absent."""
    cache_key = cache.article_detail_key(article_id)
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    data = _article_to_dict(await _load(db, article_id))
    await cache.set(cache_key, data, ttl=settings.CACHE_TTL_DETAIL)
    return data


async def create_article(
    db: AsyncSession, data: ArticleWrite, now: datetime | None = None
) -> dict:
    """
    Create an article.  ``published_at`` is stored exactly as supplied:
    None creates a draft, a timestamp creates a published article.
    """
    _validate(data)
    await _ensure_author(db, data.user_id)

    now = now or utcnow()
    article = Article(
        user_id=data.user_id,
        title=data.title,
        content=data.content,
        published_at=data.published_at,
        created_at=now,
        updated_at=now,
    )
    db.add(article)
    await db.flush()

    cache.invalidate_after_commit(db)
    return _article_to_dict(article)


async def update_article(
    db: AsyncSession,
    article_id: int,
    data: ArticleWrite,
    now: datetime | None = None,
) -> dict:
    """
    Replace author, title and content of an article and refresh
    ``updated_at``.  A non-null ``published_at`` publishes (or
    reschedules) the article; null leaves the publication state alone.
    """
    _validate(data)
    article = await _load(db, article_id)
    await _ensure_author(db, data.user_id)

    article.user_id = data.user_id
    article.title = data.title
    article.content = data.content
    if data.published_at is not None:
        article.published_at = data.published_at
    article.updated_at = now or utcnow()

    await db.flush()
    cache.invalidate_after_commit(db, article_id)
    return _article_to_dict(article)


async def publish_article(
    db: AsyncSession,
    article_id: int,
    at: datetime | None = None,
    now: datetime | None = None,
) -> dict:
    """Mark an article published at *at* (defaults to *now*)."""
    article = await _load(db, article_id)

    now = now or utcnow()
    article.published_at = at or now
    article.updated_at = now

    await db.flush()
    cache.invalidate_after_commit(db, article_id)
    return _article_to_dict(article)


async def delete_article(db: AsyncSession, article_id: int) -> None:
    """Permanently delete an article; NotFoundError if it does not exist."""
    article = await _load(db, article_id)

    await db.delete(article)
    await db.flush()
    cache.invalidate_after_commit(db, article_id)

import json
import logging

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from cms.config import settings

logger = logging.getLogger(__name__)


class CacheManager:
    """
    Cache-aside manager backed by Redis, used for article reads.

    Every public method is safe to call when Redis is unavailable: reads
    return None and writes are skipped, so the service keeps answering
    from the database.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except Exception as exc:
            logger.warning("Redis unavailable, article cache disabled: %s", exc)
            await client.aclose()
            return
        self._redis = client
        logger.info("Redis connected: %s", settings.REDIS_URL)

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        """Return the cached value for *key*, or None on a miss or error."""
        if not self._redis:
            return None
        try:
            data = await self._redis.get(key)
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            return None
        return json.loads(data) if data is not None else None

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        """
        Store *value* under *key* with an optional TTL in seconds.

        Failures are logged and never propagated.
        """
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching *pattern* using SCAN (avoids blocking KEYS)."""
        if not self._redis:
            return
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        except Exception as exc:
            logger.debug("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)

    # ------------------------------------------------------------------
    # Article keys
    # ------------------------------------------------------------------

    @staticmethod
    def article_list_key() -> str:
        return "articles:list"

    @staticmethod
    def article_detail_key(article_id: int) -> str:
        return f"articles:detail:{article_id}"

    @staticmethod
    def user_articles_key(user_id: int) -> str:
        return f"articles:user:{user_id}"

    async def invalidate_article(self, article_id: int | None = None) -> None:
        """
        Drop article caches after a write.

        List views (global and per-author) are always purged; the detail
        entry is purged when *article_id* is given.
        """
        await self.delete_pattern(self.article_list_key())
        await self.delete_pattern("articles:user:*")
        if article_id is not None:
            await self.delete_pattern(self.article_detail_key(article_id))

    # ------------------------------------------------------------------
    # Invalidation tied to the request transaction
    # ------------------------------------------------------------------

    def invalidate_after_commit(self, db: AsyncSession, article_id: int | None = None) -> None:
        """
        Queue an article invalidation on *db*.

        The queue is drained by ``flush_pending`` once the transaction has
        committed, so a concurrent read cannot re-cache a row that is about
        to change.  Rolled-back sessions drop the queue via ``discard_pending``.
        """
        db.info.setdefault(_PENDING_KEY, set()).add(article_id)

    async def flush_pending(self, db: AsyncSession) -> None:
        pending = db.info.pop(_PENDING_KEY, None)
        if not pending:
            return
        await self.invalidate_article()
        for article_id in pending:
            if article_id is not None:
                await self.delete_pattern(self.article_detail_key(article_id))

    def discard_pending(self, db: AsyncSession) -> None:
        db.info.pop(_PENDING_KEY, None)


_PENDING_KEY = "cms_pending_article_invalidations"


# Module-level singleton shared across all request handlers.
cache = CacheManager()

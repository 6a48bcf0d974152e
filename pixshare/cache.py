import json
import logging

import redis.asyncio as redis

from pixshare.config import settings

logger = logging.getLogger(__name__)

# Key layout for enriched post reads.
POSTS_LIST_KEY = "posts:list:all"
POSTS_BY_USER_KEY = "posts:user:{user_id}"
POST_DETAIL_KEY = "posts:detail:{post_id}"

# Session.info entry listing post ids whose cache entries a pending write made stale.
_STALE_POSTS = "pixshare.stale_posts"


class CacheManager:
    """
    Cache-aside manager backed by Redis.

    Every method is safe to call when Redis is unavailable: reads return
    None and writes are skipped, so feeds are simply rebuilt from the
    document store.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, cache disabled: %s", exc)
            self._redis = None

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        """Return the cached value for *key*, or None on a miss / error."""
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
        Persist *value* under *key* with an optional TTL (seconds).

        Failures are logged and dropped; a cache write never fails a request.
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
            keys: list[str] = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        except Exception as exc:
            logger.debug("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)

    # ------------------------------------------------------------------
    # Domain-level invalidation
    # ------------------------------------------------------------------

    async def invalidate_posts(self, post_id: str | None = None, db=None) -> None:
        """
        Drop cached feeds after any write.

        Feeds embed author names and counts, so every list is stale after
        a post, comment, like or user change.  The detail entry for
        *post_id* is removed too when given.

        When *db* is the session holding the write, the invalidation is
        also recorded on it and repeated by ``invalidate_committed``: a
        read between this call and the commit can re-cache the old state.
        """
        await self.delete_pattern(POSTS_LIST_KEY)
        await self.delete_pattern(POSTS_BY_USER_KEY.format(user_id="*"))
        if post_id is not None:
            await self.delete_pattern(POST_DETAIL_KEY.format(post_id=post_id))
        if db is not None:
            db.info.setdefault(_STALE_POSTS, set()).add(post_id)

    async def invalidate_committed(self, db) -> None:
        """Repeat the invalidations recorded on *db*.  Call after its commit."""
        for post_id in db.info.pop(_STALE_POSTS, set()):
            await self.invalidate_posts(post_id)

    @staticmethod
    def discard_pending(db) -> None:
        """Forget the invalidations recorded on *db* after a rollback."""
        db.info.pop(_STALE_POSTS, None)


# Module-level singleton shared across all request handlers.
cache = CacheManager()

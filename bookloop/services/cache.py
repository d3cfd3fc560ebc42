import json
from typing import Any, Callable, Dict, Optional

import redis
import structlog

from bookloop.config import settings

logger = structlog.get_logger(__name__)


def build_redis_client() -> Optional[redis.Redis]:
    if not settings.REDIS_URL:
        return None
    return redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)


class StatsCache:
    """Read-through cache for derived read models (platform stats, profiles).

    The cache never owns data: every entry is rebuilt from the database by
    its loader. Each mutation bumps a generation counter, so entries written
    before the mutation are never served again and simply age out via TTL.
    With no Redis client configured every read goes straight to the loader.
    """

    PREFIX = "bookloop"

    def __init__(self, client: Optional[Any] = None, ttl: int = settings.CACHE_TTL_SECONDS):
        self.client = client
        self.ttl = ttl

    @property
    def _generation_key(self) -> str:
        return f"{self.PREFIX}:generation"

    def _key(self, name: str) -> str:
        generation = self.client.get(self._generation_key) or "0"
        return f"{self.PREFIX}:{generation}:{name}"

    def get_or_load(self, name: str, loader: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        if self.client is None:
            return loader()

        try:
            key = self._key(name)
            cached = self.client.get(key)
        except redis.RedisError as e:
            logger.warning("cache_read_failed", key=name, error=str(e))
            return loader()

        if cached:
            logger.debug("cache_hit", key=name)
            return json.loads(cached)

        value = loader()
        try:
            self.client.setex(key, self.ttl, json.dumps(value, default=str))
        except redis.RedisError as e:
            logger.warning("cache_write_failed", key=name, error=str(e))
        return value

    def invalidate(self) -> None:
        if self.client is None:
            return
        try:
            self.client.incr(self._generation_key)
        except redis.RedisError as e:
            logger.warning("cache_invalidate_failed", error=str(e))

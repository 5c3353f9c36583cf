"""Scrape result cache.

Key: "scrape:{url}" (raw requested URL, no normalization) | TTL: 1 hour.
Only content-bearing results are stored. Every operation fails open: an
unconfigured or unreachable backend behaves as a permanent miss.
"""

import logging

from pydantic import ValidationError

from deepcite.config import settings
from deepcite.core.metrics import scrape_cache_events_total
from deepcite.core.redis import ResilientRedis
from deepcite.schemas.scrape import ExtractionResult

logger = logging.getLogger(__name__)

CACHE_PREFIX = "scrape:"


def cache_key(url: str) -> str:
    return f"{CACHE_PREFIX}{url}"


class ScrapeCache:
    """Thin get/set facade over a ResilientRedis handle (or nothing)."""

    def __init__(self, redis: ResilientRedis | None = None, default_ttl: int | None = None):
        self._redis = redis
        self.default_ttl = default_ttl or settings.CACHE_TTL_SECONDS

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    async def get(self, key: str) -> ExtractionResult | None:
        if self._redis is None:
            return None

        try:
            raw = await self._redis.get(key)
        except Exception as e:
            logger.warning(f"Cache get failed for {key}: {e}")
            return None

        if not raw:
            scrape_cache_events_total.labels(event="miss").inc()
            return None

        try:
            value = ExtractionResult.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            return None

        scrape_cache_events_total.labels(event="hit").inc()
        logger.debug(f"Cache hit for {key}")
        return value

    async def set(self, key: str, value: ExtractionResult, ttl_seconds: int | None = None) -> None:
        if self._redis is None:
            return

        ttl = ttl_seconds or self.default_ttl
        try:
            await self._redis.setex(key, ttl, value.model_dump_json(by_alias=True))
            scrape_cache_events_total.labels(event="write").inc()
            logger.debug(f"Cached {key} (TTL={ttl}s)")
        except Exception as e:
            logger.warning(f"Cache set failed for {key}: {e}")

    async def ping(self) -> bool:
        if self._redis is None:
            return False
        return bool(await self._redis.ping())

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.close()


_scrape_cache: ScrapeCache | None = None


def get_scrape_cache() -> ScrapeCache:
    """Return the process-wide cache handle, building it on first use."""
    global _scrape_cache
    if _scrape_cache is None:
        redis = None
        if settings.CACHE_ENABLED and settings.REDIS_URL:
            redis = ResilientRedis(settings.REDIS_URL)
        else:
            logger.info("Scrape cache disabled (no REDIS_URL configured)")
        _scrape_cache = ScrapeCache(redis)
    return _scrape_cache


async def close_scrape_cache() -> None:
    global _scrape_cache
    if _scrape_cache is not None:
        await _scrape_cache.close()
        _scrape_cache = None

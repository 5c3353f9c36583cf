"""Redis access for the scrape cache, degrading to defaults when Redis is down.

Only the handful of commands the cache needs are exposed. Connection and
timeout errors never escape: the call returns its default, the broken client
is discarded, and a circuit breaker stops hammering a dead server.
"""

import logging
import time

import redis.asyncio as aioredis

from deepcite.config import settings

logger = logging.getLogger(__name__)

_CONNECTION_ERRORS = (
    aioredis.ConnectionError,
    aioredis.TimeoutError,
    ConnectionRefusedError,
    OSError,
)


class CircuitBreaker:
    """Consecutive-failure breaker: `threshold` failures open it for `cooldown` seconds."""

    def __init__(self, threshold: int, cooldown: float):
        self.threshold = threshold
        self.cooldown = cooldown
        self.failures = 0
        self.open_until = 0.0

    def allows(self) -> bool:
        if self.failures < self.threshold:
            return True
        if time.monotonic() >= self.open_until:
            # Half-open: the next failure reopens it
            self.failures = self.threshold - 1
            return True
        return False

    def record_success(self):
        self.failures = 0

    def record_failure(self) -> bool:
        """Count a failure; returns True when this failure opened the breaker."""
        self.failures += 1
        if self.failures == self.threshold:
            self.open_until = time.monotonic() + self.cooldown
            return True
        return False


class ResilientRedis:
    CB_THRESHOLD = 5
    CB_COOLDOWN = 10.0

    def __init__(self, url: str, max_connections: int | None = None):
        self._url = url
        self._max_connections = max_connections or settings.REDIS_MAX_CONNECTIONS
        self._client: aioredis.Redis | None = None
        self.breaker = CircuitBreaker(self.CB_THRESHOLD, self.CB_COOLDOWN)

    @property
    def client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=self._max_connections,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._client

    async def _discard_client(self):
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.aclose()
        except Exception as e:
            logger.debug(f"Closing broken Redis client raised: {e}")

    async def _call(self, command: str, *args, default=None):
        if not self.breaker.allows():
            return default

        try:
            result = await getattr(self.client, command)(*args)
        except _CONNECTION_ERRORS as e:
            logger.warning(f"Redis {command} failed, continuing without cache: {e}")
            if self.breaker.record_failure():
                logger.warning(
                    f"Redis circuit breaker open, skipping Redis for {self.breaker.cooldown}s"
                )
            await self._discard_client()
            return default

        self.breaker.record_success()
        return result

    async def get(self, key):
        return await self._call("get", key)

    async def setex(self, name, ttl_seconds, value):
        return await self._call("setex", name, ttl_seconds, value, default=False)

    async def ping(self):
        return await self._call("ping", default=False)

    async def close(self):
        await self._discard_client()

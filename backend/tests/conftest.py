import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from deepcite.core.cache import ScrapeCache


class FakeRedis:
    """Minimal in-memory stand-in for ResilientRedis."""

    def __init__(self):
        self._store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str):
        return self._store.get(key)

    async def set(self, key: str, value: str, ex: int = None):
        self._store[key] = value
        if ex:
            self.ttls[key] = ex
        return True

    async def setex(self, key: str, ttl: int, value: str):
        self._store[key] = value
        self.ttls[key] = ttl
        return True

    async def ping(self):
        return True

    async def close(self):
        pass


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return ScrapeCache(fake_redis)


@pytest_asyncio.fixture
async def client():
    from deepcite.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

import asyncio
import logging
import random

import httpx

from deepcite.config import settings
from deepcite.core.exceptions import FetchError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Realistic desktop browser header sets, one picked per request
# ---------------------------------------------------------------------------

_HEADER_ROTATION_POOL = [
    # Chrome 120 on macOS
    {
        "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate, br",
        "DNT": "1",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
        "Cache-Control": "max-age=0",
    },
    # Chrome 124 on Windows
    {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate, br",
        "Sec-Ch-Ua": '"Chromium";v="124", "Google Chrome";v="124", "Not-A.Brand";v="99"',
        "Sec-Ch-Ua-Mobile": "?0",
        "Sec-Ch-Ua-Platform": '"Windows"',
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
        "Upgrade-Insecure-Requests": "1",
        "Cache-Control": "max-age=0",
    },
    # Firefox 126 on Linux
    {
        "User-Agent": "Mozilla/5.0 (X11; Linux x86_64; rv:126.0) Gecko/20100101 Firefox/126.0",
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
        "Accept-Encoding": "gzip, deflate, br",
        "DNT": "1",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
    },
]


def browser_headers() -> dict[str, str]:
    return random.choice(_HEADER_ROTATION_POOL).copy()


def _is_accepted_status(status_code: int) -> bool:
    return 200 <= status_code < 400


def _new_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        follow_redirects=True,
        max_redirects=settings.FETCH_MAX_REDIRECTS,
        timeout=settings.FETCH_TIMEOUT_SECONDS,
    )


async def _get_once(client: httpx.AsyncClient, url: str) -> httpx.Response:
    response = await client.get(
        url, headers=browser_headers(), timeout=settings.FETCH_TIMEOUT_SECONDS
    )
    if not _is_accepted_status(response.status_code):
        raise FetchError(
            url,
            f"Request failed with status code {response.status_code}",
            status_code=response.status_code,
        )
    return response


async def fetch_page(
    url: str,
    client: httpx.AsyncClient | None = None,
    max_attempts: int | None = None,
    backoff_base: float | None = None,
) -> httpx.Response:
    """GET a URL with browser headers, retrying transient failures.

    Each attempt is capped at FETCH_TIMEOUT_SECONDS end to end, however
    slowly the server trickles its response. Attempt n failing waits
    backoff_base**n seconds before attempt n+1 (2s, then 4s with the
    defaults). Raises FetchError once every attempt has failed.
    """
    attempts = max_attempts or settings.FETCH_MAX_ATTEMPTS
    base = settings.FETCH_BACKOFF_BASE if backoff_base is None else backoff_base
    timeout = settings.FETCH_TIMEOUT_SECONDS

    own_client = client is None
    if own_client:
        client = _new_client()

    last_error: Exception | None = None
    try:
        for attempt in range(1, attempts + 1):
            try:
                return await asyncio.wait_for(_get_once(client, url), timeout=timeout)
            except asyncio.TimeoutError:
                last_error = FetchError(url, f"Request timed out after {timeout:g}s")
            except (httpx.HTTPError, FetchError) as e:
                last_error = e

            if attempt < attempts:
                delay = base**attempt
                logger.info(
                    f"Fetch attempt {attempt}/{attempts} failed for {url}: "
                    f"{last_error!r}; retrying in {delay:.0f}s"
                )
                await asyncio.sleep(delay)
    finally:
        if own_client:
            await client.aclose()

    if isinstance(last_error, FetchError):
        raise last_error
    reason = str(last_error) or type(last_error).__name__
    raise FetchError(url, reason) from last_error

import asyncio
import logging
import re
import time

from deepcite.config import settings
from deepcite.core.cache import ScrapeCache, cache_key, get_scrape_cache
from deepcite.core.exceptions import InvalidURLError
from deepcite.core.metrics import scrape_duration_seconds, scrape_requests_total
from deepcite.schemas.document import PdfDocument, UnrecognizedDocument
from deepcite.schemas.scrape import (
    CACHED_SUFFIX,
    SEARCH_SUFFIX,
    STRATEGY_DOCX,
    STRATEGY_PDF,
    ExtractionResult,
)
from deepcite.services.document import get_document_type, parse_document_from_url
from deepcite.services.strategies import ScrapeStrategy, default_strategies, run_strategies

logger = logging.getLogger(__name__)

# Absolute http(s) URL; also used to discover URLs inside free text.
URL_PATTERN = re.compile(
    r"https?://(?:www\.)?(?:[-a-z0-9]{1,63}\.)+[a-z]{2,63}(?::\d{2,5})?(?:[/?#][^\s\"']*)?",
    re.IGNORECASE,
)

INVALID_URL_ERROR = f"Failed to scrape the URL: {InvalidURLError.MESSAGE}"
NO_CONTENT_ERROR = "Failed to scrape the URL: no extractable content found"
UNEXPECTED_ERROR = "Failed to scrape URL"

# Legacy .doc has no tag of its own in the public set
_DOCUMENT_TAGS = {"pdf": STRATEGY_PDF, "docx": STRATEGY_DOCX, "doc": STRATEGY_DOCX}


def is_valid_url(url: str) -> bool:
    return isinstance(url, str) and URL_PATTERN.fullmatch(url) is not None


def validate_url(url: str) -> str:
    if not is_valid_url(url):
        raise InvalidURLError(url)
    return url


def collect_urls(
    urls: list[str] | None = None,
    text: str | None = None,
    limit: int | None = None,
) -> list[str]:
    """Gather URLs from a list and/or free text, de-duplicated, first `limit` kept."""
    limit = limit or settings.MAX_URLS_PER_REQUEST
    candidates = [u.strip() for u in (urls or []) if u and u.strip()]
    if text:
        candidates.extend(URL_PATTERN.findall(text))
    return list(dict.fromkeys(candidates))[:limit]


def document_to_result(url: str, doc) -> ExtractionResult:
    if isinstance(doc, UnrecognizedDocument):
        return ExtractionResult.failure(url, f"Failed to scrape the URL: unrecognized document {url}")

    meta = ""
    if isinstance(doc, PdfDocument) and doc.page_count:
        meta = f"{doc.page_count} pages"

    return ExtractionResult(
        url=url,
        title=f"{doc.kind.upper()} Document",
        meta_description=meta,
        content=doc.content,
        scrape_error=doc.error,
        scraper_used=_DOCUMENT_TAGS[doc.kind],
    )


async def _scrape(
    url: str, cache: ScrapeCache, strategies: list[ScrapeStrategy] | None
) -> ExtractionResult:
    try:
        validate_url(url)
    except InvalidURLError as e:
        return ExtractionResult.failure(url, f"Failed to scrape the URL: {e}")

    key = cache_key(url)
    cached = await cache.get(key)
    if cached is not None and cached.has_content:
        logger.info(f"Serving {url} from cache ({cached.scraper_used})")
        return cached.tagged(CACHED_SUFFIX)

    if get_document_type(url):
        doc = await parse_document_from_url(url)
        return document_to_result(url, doc)

    result = await run_strategies(url, strategies or default_strategies())
    if result.scrape_error:
        return result
    if not result.has_content:
        return result.model_copy(update={"scrape_error": NO_CONTENT_ERROR})

    await cache.set(key, result)
    return result


async def scrape_url(
    url: str,
    *,
    cache: ScrapeCache | None = None,
    strategies: list[ScrapeStrategy] | None = None,
) -> ExtractionResult:
    """Extract the textual content of one URL.

    Order: validate, cache lookup, document short-circuit, then the strategy
    ladder (static fetch, escalating to a headless render when the static
    result looks client-rendered or thin). Only content-bearing results from
    the strategy ladder are cached.
    """
    start = time.time()
    result = await _scrape(url, cache or get_scrape_cache(), strategies)
    scrape_duration_seconds.observe(time.time() - start)
    scrape_requests_total.labels(
        strategy=result.scraper_used,
        status="error" if result.scrape_error else "success",
    ).inc()
    return result


async def scrape_many(
    urls: list[str],
    *,
    cache: ScrapeCache | None = None,
    strategies: list[ScrapeStrategy] | None = None,
    via_search: bool = False,
) -> list[ExtractionResult]:
    """Scrape URLs concurrently; one result per input URL, in input order.

    A URL whose scrape raises is reported as a failure result instead of
    taking the whole batch down.
    """
    cache = cache or get_scrape_cache()
    outcomes = await asyncio.gather(
        *(scrape_url(url, cache=cache, strategies=strategies) for url in urls),
        return_exceptions=True,
    )

    results: list[ExtractionResult] = []
    for url, outcome in zip(urls, outcomes):
        if isinstance(outcome, Exception):
            logger.error(f"Unexpected error scraping {url}: {outcome!r}", exc_info=outcome)
            outcome = ExtractionResult.failure(url, UNEXPECTED_ERROR)
        elif isinstance(outcome, BaseException):
            raise outcome
        if via_search:
            outcome = outcome.tagged(SEARCH_SUFFIX)
        results.append(outcome)
    return results

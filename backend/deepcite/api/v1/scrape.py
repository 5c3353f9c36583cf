import logging

from fastapi import APIRouter

from deepcite.core.exceptions import BadRequestError
from deepcite.schemas.scrape import (
    BatchScrapeRequest,
    BatchScrapeResponse,
    ExtractionResult,
    ScrapeRequest,
)
from deepcite.services.scraper import collect_urls, scrape_many, scrape_url

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=ExtractionResult,
    summary="Scrape a single URL",
    description="Extract the textual content of a URL. Static HTML extraction escalates to a headless browser for client-rendered or thin pages; PDF and DOCX URLs are parsed as documents. Failures are reported in `scrapeError`, never as HTTP errors.",
)
async def scrape(request: ScrapeRequest) -> ExtractionResult:
    return await scrape_url(request.url.strip())


@router.post(
    "/batch",
    response_model=BatchScrapeResponse,
    summary="Scrape several URLs concurrently",
    description="Scrape up to 5 distinct URLs, given as a list or discovered in free text. Returns one result per URL in order, plus a content-free source summary for each.",
)
async def scrape_batch(request: BatchScrapeRequest) -> BatchScrapeResponse:
    urls = collect_urls(urls=request.urls, text=request.text)
    if not urls:
        raise BadRequestError("No URLs found in request")

    logger.info(f"Batch scrape of {len(urls)} URL(s)")
    results = await scrape_many(urls)
    return BatchScrapeResponse(
        results=results,
        sources=[r.to_source() for r in results],
    )

"""Ordered scrape strategies and the escalation policy that walks them.

Each strategy exposes the same `attempt(url) -> ExtractionResult` call. The
runner tries them in order, moving on only while the chosen result still
fails the quality check, and keeps whichever result the policy prefers.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from deepcite.config import settings
from deepcite.core.exceptions import FetchError
from deepcite.core.metrics import scrape_escalations_total
from deepcite.schemas.scrape import ExtractionResult, STRATEGY_HEADLESS, STRATEGY_STATIC
from deepcite.services.browser import render_url
from deepcite.services.content import extract_content
from deepcite.services.fetcher import fetch_page
from deepcite.services.spa import is_client_rendered

logger = logging.getLogger(__name__)

ESCALATE_CLIENT_RENDERED = "client_rendered"
ESCALATE_LOW_CONTENT = "low_content"


class ScrapeStrategy(ABC):
    name: str

    @abstractmethod
    async def attempt(self, url: str) -> ExtractionResult:
        """Produce a result for `url`; failures come back as error results."""


class StaticStrategy(ScrapeStrategy):
    """Plain HTTP fetch + BeautifulSoup extraction."""

    name = STRATEGY_STATIC

    def __init__(self, client: httpx.AsyncClient | None = None):
        self._client = client

    async def attempt(self, url: str) -> ExtractionResult:
        try:
            response = await fetch_page(url, client=self._client)
        except FetchError as e:
            logger.warning(f"Static fetch failed for {url}: {e.reason}")
            return ExtractionResult.failure(url, f"Failed to scrape the URL: {e.reason}")

        html = response.text
        result = extract_content(html, url)
        return result.model_copy(update={"client_rendered": is_client_rendered(html)})


class HeadlessStrategy(ScrapeStrategy):
    """Full Chromium render; only reached through escalation."""

    name = STRATEGY_HEADLESS

    async def attempt(self, url: str) -> ExtractionResult:
        return await render_url(url)


def default_strategies() -> list[ScrapeStrategy]:
    return [StaticStrategy(), HeadlessStrategy()]


def escalation_reason(result: ExtractionResult) -> str | None:
    """Why `result` is not good enough to stop at, or None if it is."""
    if result.client_rendered:
        return ESCALATE_CLIENT_RENDERED
    if len(result.content) < settings.MIN_CONTENT_LENGTH:
        return ESCALATE_LOW_CONTENT
    return None


def prefer(current: ExtractionResult, candidate: ExtractionResult) -> ExtractionResult:
    """Pick between the result in hand and a later strategy's result.

    The later result wins only if it actually has content and is either
    strictly longer or the current one is too thin to keep.
    """
    if candidate.scrape_error or not candidate.has_content:
        return current
    if (
        len(candidate.content) > len(current.content)
        or len(current.content) < settings.THIN_CONTENT_LENGTH
    ):
        return candidate
    return current


async def run_strategies(url: str, strategies: list[ScrapeStrategy]) -> ExtractionResult:
    if not strategies:
        raise ValueError("at least one scrape strategy is required")

    chosen: ExtractionResult | None = None
    for strategy in strategies:
        if chosen is not None:
            reason = escalation_reason(chosen)
            if reason is None:
                break
            logger.info(
                f"Escalating {url} to {strategy.name} ({reason}, "
                f"{len(chosen.content)} chars so far)"
            )
            scrape_escalations_total.labels(reason=reason).inc()

        result = await strategy.attempt(url)

        if chosen is None:
            # A transport failure on the first strategy ends the run
            if result.scrape_error:
                return result
            chosen = result
            continue

        if result.scrape_error:
            logger.info(f"Keeping {chosen.scraper_used} result for {url}: {result.scrape_error}")
        chosen = prefer(chosen, result)

    return chosen

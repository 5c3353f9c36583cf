"""Headless browser rendering for client-rendered pages.

Every render launches its own Chromium process and tears it down on every
exit path. There is no shared pool: this is the slow fallback, and a
browser is never handed from one scrape to another.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from playwright.async_api import async_playwright, Browser

from deepcite.config import settings
from deepcite.core.metrics import active_browser_contexts
from deepcite.schemas.scrape import ExtractionResult, STRATEGY_HEADLESS
from deepcite.services.content import (
    ARTICLE_SELECTOR,
    BLOCK_SELECTOR,
    CONTENT_SELECTOR,
    NOISE_SELECTORS,
    ContentBuckets,
    build_result,
)

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1920, "height": 1080}

_CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]

# Runs inside the rendered page: strips the same noise and collects the same
# buckets as the static extractor, leaving assembly to Python.
_COLLECT_BUCKETS_JS = """
({noise, article, content, blocks}) => {
    for (const sel of noise) {
        document.querySelectorAll(sel).forEach(el => el.remove());
    }
    const text = (el) => {
        if (!el) return '';
        const parts = [];
        const walker = document.createTreeWalker(el, NodeFilter.SHOW_TEXT);
        while (walker.nextNode()) parts.push(walker.currentNode.nodeValue);
        return parts.join(' ');
    };
    const all = (sel) => Array.from(document.querySelectorAll(sel)).map(text).join(' ');
    const meta = document.querySelector('meta[name="description"]');
    return {
        title: text(document.querySelector('title')),
        meta_description: meta ? (meta.getAttribute('content') || '') : '',
        h1: all('h1'),
        h2: all('h2'),
        h3: all('h3'),
        article: all(article),
        content: all(content),
        paragraphs: all('p'),
        list_items: all('li'),
        body: text(document.body),
        blocks: all(blocks),
    };
}
"""


@asynccontextmanager
async def launch_browser():
    """Launch a dedicated Chromium process, guaranteed closed on exit."""
    async with async_playwright() as pw:
        browser: Browser = await pw.chromium.launch(
            headless=settings.BROWSER_HEADLESS,
            args=_CHROMIUM_ARGS,
        )
        active_browser_contexts.inc()
        try:
            yield browser
        finally:
            active_browser_contexts.dec()
            # Shielded so a cancelled scrape still reaps its browser process
            try:
                await asyncio.shield(browser.close())
            except (asyncio.CancelledError, Exception) as e:
                logger.debug(f"Browser close raised during teardown: {e!r}")


async def _collect_rendered_buckets(browser: Browser, url: str) -> ContentBuckets:
    page = await browser.new_page(viewport=VIEWPORT, user_agent=USER_AGENT)
    await page.goto(url, wait_until="networkidle", timeout=settings.RENDER_TIMEOUT_MS)
    # Let late async content paint
    await asyncio.sleep(settings.RENDER_SETTLE_MS / 1000)
    payload = await page.evaluate(
        _COLLECT_BUCKETS_JS,
        {
            "noise": NOISE_SELECTORS,
            "article": ARTICLE_SELECTOR,
            "content": CONTENT_SELECTOR,
            "blocks": BLOCK_SELECTOR,
        },
    )
    return ContentBuckets.from_mapping(payload if isinstance(payload, dict) else {})


async def render_url(url: str) -> ExtractionResult:
    """Render a URL in headless Chromium and extract its content.

    Page setup, navigation, settle delay and evaluation together are capped at
    RENDER_TIMEOUT_MS + RENDER_SETTLE_MS. Never raises: any launch,
    navigation, timeout or evaluation failure is returned as a content-less
    result carrying the error.
    """
    ceiling = (settings.RENDER_TIMEOUT_MS + settings.RENDER_SETTLE_MS) / 1000
    try:
        async with launch_browser() as browser:
            buckets = await asyncio.wait_for(
                _collect_rendered_buckets(browser, url), timeout=ceiling
            )
    except Exception as e:
        reason = str(e)
        if not reason and isinstance(e, asyncio.TimeoutError):
            reason = f"render timed out after {ceiling:g}s"
        logger.warning(f"Headless render failed for {url}: {reason}")
        return ExtractionResult.failure(
            url, f"Headless render failed: {reason}", scraper_used=STRATEGY_HEADLESS
        )

    result = build_result(url, buckets, STRATEGY_HEADLESS)
    logger.info(f"Headless render for {url}: {len(result.content)} chars")
    return result

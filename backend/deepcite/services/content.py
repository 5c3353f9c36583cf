"""Static HTML content extraction.

Noise elements are stripped first, then page text is gathered into
priority-ordered buckets and joined into one content string. The same
selectors and the same assembly are reused by the headless renderer, which
collects the buckets inside the rendered page instead of from raw markup.
"""

import logging
from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag

from deepcite.config import settings
from deepcite.schemas.scrape import ExtractionResult, Headings, STRATEGY_STATIC
from deepcite.services.text_utils import cap_content, clean_text

logger = logging.getLogger(__name__)

# Removed before any text is read.
NOISE_SELECTORS = [
    "script",
    "style",
    "noscript",
    "iframe",
    "nav",
    "header",
    "footer",
    "aside",
    ".advertisement",
    ".ads",
    ".sidebar",
]

# Semantic article containers.
ARTICLE_SELECTOR = "article, main, .article, .post, .entry, .story, .news-article"

# Generic content-class containers.
CONTENT_SELECTOR = (
    '.content, #content, [class*="content"], .post-content, .entry-content, '
    ".article-content, .text-content, .body-content"
)

# Last-resort container used when body text is still too thin.
BLOCK_SELECTOR = "div"


@dataclass
class ContentBuckets:
    """Raw text per bucket, in assembly priority order (body/blocks are fallbacks)."""

    title: str = ""
    meta_description: str = ""
    h1: str = ""
    h2: str = ""
    h3: str = ""
    article: str = ""
    content: str = ""
    paragraphs: str = ""
    list_items: str = ""
    body: str = ""
    blocks: str = ""

    def prioritized(self) -> list[str]:
        return [
            self.title,
            self.meta_description,
            self.h1,
            self.h2,
            self.h3,
            self.article,
            self.content,
            self.paragraphs,
            self.list_items,
        ]

    @classmethod
    def from_mapping(cls, data: dict) -> "ContentBuckets":
        """Build from a loosely-typed mapping (e.g. a page.evaluate() payload)."""
        values = {}
        for name in cls.__dataclass_fields__:
            value = data.get(name) if data else None
            values[name] = value if isinstance(value, str) else ""
        return cls(**values)


def assemble_content(buckets: ContentBuckets) -> str:
    """Join the prioritized buckets, walking the fallback ladder when thin.

    < MIN_CONTENT_LENGTH chars: use full body text instead.
    Still < THIN_CONTENT_LENGTH chars: use all block-container text.
    Capping is always the final step.
    """
    combined = clean_text(" ".join(t for t in buckets.prioritized() if t and t.strip()))

    if len(combined) < settings.MIN_CONTENT_LENGTH:
        combined = clean_text(buckets.body)

    if len(combined) < settings.THIN_CONTENT_LENGTH:
        combined = clean_text(buckets.blocks)

    return cap_content(combined)


def _remove_noise(soup: BeautifulSoup) -> None:
    for selector in NOISE_SELECTORS:
        for el in soup.select(selector):
            # Nested matches are already gone with their ancestor
            if el.decomposed:
                continue
            el.decompose()


def _joined_text(elements: list[Tag]) -> str:
    return " ".join(el.get_text(" ") for el in elements)


def collect_buckets(html: str) -> ContentBuckets:
    soup = BeautifulSoup(html or "", "lxml")
    _remove_noise(soup)

    title_tag = soup.find("title")
    meta_tag = soup.find("meta", attrs={"name": "description"})
    body = soup.find("body")

    return ContentBuckets(
        title=title_tag.get_text(" ") if title_tag else "",
        meta_description=(meta_tag.get("content") or "") if meta_tag else "",
        h1=_joined_text(soup.find_all("h1")),
        h2=_joined_text(soup.find_all("h2")),
        h3=_joined_text(soup.find_all("h3")),
        article=_joined_text(soup.select(ARTICLE_SELECTOR)),
        content=_joined_text(soup.select(CONTENT_SELECTOR)),
        paragraphs=_joined_text(soup.find_all("p")),
        list_items=_joined_text(soup.find_all("li")),
        body=body.get_text(" ") if body else soup.get_text(" "),
        blocks=_joined_text(soup.select(BLOCK_SELECTOR)),
    )


def build_result(url: str, buckets: ContentBuckets, scraper_used: str) -> ExtractionResult:
    return ExtractionResult(
        url=url,
        title=clean_text(buckets.title),
        headings=Headings(
            h1=clean_text(buckets.h1),
            h2=clean_text(buckets.h2),
            h3=clean_text(buckets.h3),
        ),
        meta_description=clean_text(buckets.meta_description),
        content=assemble_content(buckets),
        scraper_used=scraper_used,
    )


def extract_content(html: str, url: str = "") -> ExtractionResult:
    """Parse fetched HTML into an ExtractionResult (no error, possibly empty content)."""
    buckets = collect_buckets(html)
    result = build_result(url, buckets, STRATEGY_STATIC)
    logger.debug(f"Static extraction for {url}: {len(result.content)} chars")
    return result

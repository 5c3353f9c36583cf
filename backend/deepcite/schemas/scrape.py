from pydantic import BaseModel, ConfigDict, Field, model_validator

# Provenance tags for the mechanism that produced a result. These strings are
# part of the wire contract (rendered as-is by clients).
STRATEGY_STATIC = "cheerio"
STRATEGY_HEADLESS = "puppeteer"
STRATEGY_PDF = "pdf"
STRATEGY_DOCX = "docx"

CACHED_SUFFIX = "cached"
SEARCH_SUFFIX = "search"


class Headings(BaseModel):
    model_config = ConfigDict(frozen=True)

    h1: str = ""
    h2: str = ""
    h3: str = ""


class SourceSummary(BaseModel):
    """Public projection of a result: never carries page content."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    scraper_used: str | None = Field(None, alias="scraperUsed")
    error: str | None = None


class ExtractionResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str
    title: str = ""
    headings: Headings = Field(default_factory=Headings)
    meta_description: str = Field("", alias="metaDescription")
    content: str = ""
    scrape_error: str | None = Field(None, alias="scrapeError")
    scraper_used: str = Field(STRATEGY_STATIC, alias="scraperUsed")
    # SPA detector verdict on the raw HTML; only the escalation policy reads it
    client_rendered: bool = Field(False, exclude=True)

    @classmethod
    def failure(
        cls, url: str, error: str, scraper_used: str = STRATEGY_STATIC
    ) -> "ExtractionResult":
        return cls(url=url, scrape_error=error, scraper_used=scraper_used)

    @property
    def has_content(self) -> bool:
        return bool(self.content)

    def tagged(self, suffix: str) -> "ExtractionResult":
        """Copy with the strategy tag suffixed, e.g. 'cheerio (cached)'."""
        return self.model_copy(
            update={"scraper_used": f"{self.scraper_used} ({suffix})"}
        )

    def to_source(self) -> SourceSummary:
        return SourceSummary(
            url=self.url, scraper_used=self.scraper_used, error=self.scrape_error
        )


class ScrapeRequest(BaseModel):
    url: str


class BatchScrapeRequest(BaseModel):
    """Either an explicit URL list or free text to discover URLs in."""

    urls: list[str] | None = None
    text: str | None = None

    @model_validator(mode="after")
    def _require_input(self):
        if not self.urls and not (self.text and self.text.strip()):
            raise ValueError("Provide 'urls' or 'text'")
        return self


class BatchScrapeResponse(BaseModel):
    results: list[ExtractionResult]
    sources: list[SourceSummary]

"""Tests for the per-URL orchestrator, the escalation policy and fan-out."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from deepcite.core.cache import cache_key
from deepcite.schemas.document import LegacyDocDocument, PdfDocument
from deepcite.schemas.scrape import ExtractionResult
from deepcite.services.scraper import (
    INVALID_URL_ERROR,
    NO_CONTENT_ERROR,
    UNEXPECTED_ERROR,
    collect_urls,
    is_valid_url,
    scrape_many,
    scrape_url,
)
from deepcite.services.strategies import (
    ScrapeStrategy,
    StaticStrategy,
    escalation_reason,
    prefer,
    run_strategies,
)


class FakeStrategy(ScrapeStrategy):
    """Strategy that returns a canned result and records every call."""

    def __init__(self, name, content="", error=None, client_rendered=False):
        self.name = name
        self.content = content
        self.error = error
        self.client_rendered = client_rendered
        self.calls: list[str] = []

    async def attempt(self, url: str) -> ExtractionResult:
        self.calls.append(url)
        return ExtractionResult(
            url=url,
            title="Fake",
            content=self.content,
            scrape_error=self.error,
            scraper_used=self.name,
            client_rendered=self.client_rendered,
        )


def text_of_length(n: int) -> str:
    return "x" * n


def _ladder(static_len=0, headless_len=0, spa=False, static_error=None, headless_error=None):
    static = FakeStrategy(
        "cheerio", content=text_of_length(static_len), error=static_error, client_rendered=spa
    )
    headless = FakeStrategy("puppeteer", content=text_of_length(headless_len), error=headless_error)
    return static, headless


class TestUrlValidation:
    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com",
            "http://www.example.com/path/to/page",
            "https://sub.domain.example.co.uk/a?b=1&c=2#frag",
            "https://example.com:8080/x",
            "HTTPS://EXAMPLE.COM",
        ],
    )
    def test_valid(self, url):
        assert is_valid_url(url)

    @pytest.mark.parametrize(
        "url",
        ["", "not a url", "ftp://example.com", "https://", "https://localhost", "example.com"],
    )
    def test_invalid(self, url):
        assert not is_valid_url(url)


class TestCollectUrls:
    def test_dedup_preserves_order(self):
        urls = ["https://a.com", "https://b.com", "https://a.com"]
        assert collect_urls(urls=urls) == ["https://a.com", "https://b.com"]

    def test_caps_at_five(self):
        urls = [f"https://site{i}.com" for i in range(8)]
        assert collect_urls(urls=urls) == urls[:5]

    def test_discovers_urls_in_text(self):
        text = "See https://a.com/x and also http://b.org/y?z=1 plus https://a.com/x again"
        assert collect_urls(text=text) == ["https://a.com/x", "http://b.org/y?z=1"]

    def test_list_and_text_combined(self):
        result = collect_urls(urls=["https://a.com"], text="more at https://b.com")
        assert result == ["https://a.com", "https://b.com"]

    def test_strips_blank_entries(self):
        assert collect_urls(urls=["  https://a.com  ", "", "   "]) == ["https://a.com"]


class TestEscalationPolicy:
    def test_long_static_result_is_final(self):
        result = ExtractionResult(url="u", content=text_of_length(500))
        assert escalation_reason(result) is None

    def test_short_result_escalates(self):
        result = ExtractionResult(url="u", content=text_of_length(499))
        assert escalation_reason(result) == "low_content"

    def test_client_rendered_escalates_regardless_of_length(self):
        result = ExtractionResult(url="u", content=text_of_length(5000), client_rendered=True)
        assert escalation_reason(result) == "client_rendered"

    def test_prefer_longer_candidate(self):
        current = ExtractionResult(url="u", content=text_of_length(600))
        candidate = ExtractionResult(url="u", content=text_of_length(601), scraper_used="puppeteer")
        assert prefer(current, candidate) is candidate

    def test_prefer_keeps_longer_current(self):
        current = ExtractionResult(url="u", content=text_of_length(600))
        candidate = ExtractionResult(url="u", content=text_of_length(300), scraper_used="puppeteer")
        assert prefer(current, candidate) is current

    def test_prefer_replaces_thin_current(self):
        current = ExtractionResult(url="u", content=text_of_length(150))
        candidate = ExtractionResult(url="u", content=text_of_length(100), scraper_used="puppeteer")
        assert prefer(current, candidate) is candidate

    def test_prefer_never_adopts_failed_candidate(self):
        current = ExtractionResult(url="u", content="")
        candidate = ExtractionResult.failure("u", "Headless render failed: boom", "puppeteer")
        assert prefer(current, candidate) is current


class TestRunStrategies:
    @pytest.mark.asyncio
    async def test_requires_a_strategy(self):
        with pytest.raises(ValueError):
            await run_strategies("https://example.com", [])

    @pytest.mark.asyncio
    async def test_good_static_result_skips_headless(self):
        """A non-SPA page with >= 500 chars never launches a browser."""
        static, headless = _ladder(static_len=800)
        result = await run_strategies("https://example.com", [static, headless])

        assert result.scraper_used == "cheerio"
        assert headless.calls == []

    @pytest.mark.asyncio
    async def test_spa_escalates_and_prefers_longer_render(self):
        static, headless = _ladder(static_len=800, headless_len=2000, spa=True)
        result = await run_strategies("https://app.example.com", [static, headless])

        assert headless.calls == ["https://app.example.com"]
        assert result.scraper_used == "puppeteer"
        assert len(result.content) == 2000

    @pytest.mark.asyncio
    async def test_shorter_render_keeps_static(self):
        static, headless = _ladder(static_len=300, headless_len=250)
        result = await run_strategies("https://example.com", [static, headless])

        assert headless.calls
        assert result.scraper_used == "cheerio"

    @pytest.mark.asyncio
    async def test_thin_static_replaced_by_render(self):
        static, headless = _ladder(static_len=50, headless_len=40)
        result = await run_strategies("https://example.com", [static, headless])
        assert result.scraper_used == "puppeteer"

    @pytest.mark.asyncio
    async def test_render_failure_keeps_static(self):
        """Escalation never makes the outcome worse than the static result."""
        static, headless = _ladder(static_len=120, headless_error="Headless render failed: timeout")
        result = await run_strategies("https://example.com", [static, headless])

        assert result.scraper_used == "cheerio"
        assert result.scrape_error is None
        assert len(result.content) == 120

    @pytest.mark.asyncio
    async def test_static_transport_failure_does_not_escalate(self):
        static, headless = _ladder(static_error="Failed to scrape the URL: Request failed with status code 404")
        result = await run_strategies("https://example.com", [static, headless])

        assert result.scrape_error.startswith("Failed to scrape the URL:")
        assert headless.calls == []


class TestStaticStrategy:
    @pytest.mark.asyncio
    async def test_flags_client_rendered_html(self):
        html = '<html><body><div id="root"></div><script src="/react.js"></script></body></html>'

        def handler(request):
            return httpx.Response(200, text=html)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await StaticStrategy(client=client).attempt("https://app.example.com")

        assert result.client_rendered is True
        assert result.scrape_error is None
        assert result.scraper_used == "cheerio"

    @pytest.mark.asyncio
    async def test_fetch_failure_becomes_error_result(self):
        def handler(request):
            return httpx.Response(503)

        with patch("deepcite.services.fetcher.asyncio.sleep", new_callable=AsyncMock):
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                result = await StaticStrategy(client=client).attempt("https://example.com")

        assert result.scrape_error == "Failed to scrape the URL: Request failed with status code 503"
        assert result.content == ""


class TestScrapeUrl:
    @pytest.mark.asyncio
    async def test_invalid_url_short_circuits(self, cache):
        """Invalid input never reaches the network or the cache."""
        static, headless = _ladder(static_len=800)
        result = await scrape_url("not a url", cache=cache, strategies=[static, headless])

        assert result.scrape_error == INVALID_URL_ERROR
        assert result.url == "not a url"
        assert static.calls == []

    @pytest.mark.asyncio
    async def test_success_is_cached_and_served_tagged(self, cache):
        """A second scrape within the TTL comes from cache with a ' (cached)' tag."""
        static, headless = _ladder(static_len=800)
        url = "https://example.com/article"

        first = await scrape_url(url, cache=cache, strategies=[static, headless])
        second = await scrape_url(url, cache=cache, strategies=[static, headless])

        assert first.scraper_used == "cheerio"
        assert second.scraper_used == "cheerio (cached)"
        assert second.content == first.content
        assert second.title == first.title
        assert len(static.calls) == 1

    @pytest.mark.asyncio
    async def test_cached_entry_keeps_untagged_strategy(self, cache, fake_redis):
        static, headless = _ladder(static_len=800)
        url = "https://example.com/article"
        await scrape_url(url, cache=cache, strategies=[static, headless])
        await scrape_url(url, cache=cache, strategies=[static, headless])

        stored = ExtractionResult.model_validate_json(fake_redis._store[cache_key(url)])
        assert stored.scraper_used == "cheerio"

    @pytest.mark.asyncio
    async def test_errors_are_not_cached(self, cache, fake_redis):
        static, headless = _ladder(static_error="Failed to scrape the URL: timeout")
        url = "https://example.com/down"

        await scrape_url(url, cache=cache, strategies=[static, headless])
        await scrape_url(url, cache=cache, strategies=[static, headless])

        assert fake_redis._store == {}
        assert len(static.calls) == 2

    @pytest.mark.asyncio
    async def test_empty_content_becomes_error(self, cache, fake_redis):
        """Every result carries content or an error, never neither."""
        static, headless = _ladder()
        result = await scrape_url("https://example.com/blank", cache=cache, strategies=[static, headless])

        assert result.content == ""
        assert result.scrape_error == NO_CONTENT_ERROR
        assert fake_redis._store == {}

    @pytest.mark.asyncio
    async def test_pdf_url_uses_document_parser(self, cache, fake_redis):
        static, headless = _ladder(static_len=800)
        doc = PdfDocument(content="Annual report text", page_count=12)

        with patch(
            "deepcite.services.scraper.parse_document_from_url",
            new_callable=AsyncMock,
            return_value=doc,
        ) as mock_parse:
            result = await scrape_url(
                "https://example.com/report.pdf", cache=cache, strategies=[static, headless]
            )

        mock_parse.assert_awaited_once_with("https://example.com/report.pdf")
        assert static.calls == []
        assert result.scraper_used == "pdf"
        assert result.title == "PDF Document"
        assert result.meta_description == "12 pages"
        assert result.content == "Annual report text"
        assert fake_redis._store == {}

    @pytest.mark.asyncio
    async def test_legacy_doc_url_reports_docx(self, cache):
        doc = LegacyDocDocument(error="Legacy .doc format not supported. Please convert to .docx")

        with patch(
            "deepcite.services.scraper.parse_document_from_url",
            new_callable=AsyncMock,
            return_value=doc,
        ):
            result = await scrape_url("https://example.com/memo.doc", cache=cache)

        assert result.scraper_used == "docx"
        assert "Legacy .doc" in result.scrape_error

    @pytest.mark.asyncio
    async def test_works_without_cache_backend(self):
        from deepcite.core.cache import ScrapeCache

        static, headless = _ladder(static_len=800)
        result = await scrape_url("https://example.com", cache=ScrapeCache(None), strategies=[static, headless])
        assert result.scraper_used == "cheerio"


class TestScrapeMany:
    @pytest.mark.asyncio
    async def test_one_result_per_url_in_order(self, cache):
        static, headless = _ladder(static_len=800)
        urls = ["https://a.com", "https://b.com", "not a url"]

        results = await scrape_many(urls, cache=cache, strategies=[static, headless])

        assert [r.url for r in results] == urls
        assert results[0].scrape_error is None
        assert results[2].scrape_error == INVALID_URL_ERROR

    @pytest.mark.asyncio
    async def test_raising_scrape_is_isolated(self, cache):
        """An unexpected exception for one URL does not affect its siblings."""

        async def fake_scrape(url, **kwargs):
            if url == "https://u2.com":
                raise RuntimeError("boom")
            return ExtractionResult(url=url, content="fine")

        urls = ["https://u1.com", "https://u2.com", "https://u3.com"]
        with patch("deepcite.services.scraper.scrape_url", side_effect=fake_scrape):
            results = await scrape_many(urls, cache=cache)

        assert len(results) == 3
        assert results[0].content == "fine"
        assert results[1].url == "https://u2.com"
        assert results[1].scrape_error == UNEXPECTED_ERROR
        assert results[2].content == "fine"

    @pytest.mark.asyncio
    async def test_via_search_tags_every_result(self, cache):
        static, headless = _ladder(static_len=800)
        results = await scrape_many(
            ["https://a.com", "not a url"], cache=cache, strategies=[static, headless], via_search=True
        )

        assert results[0].scraper_used == "cheerio (search)"
        assert results[1].scraper_used == "cheerio (search)"

    @pytest.mark.asyncio
    async def test_empty_input(self, cache):
        assert await scrape_many([], cache=cache) == []

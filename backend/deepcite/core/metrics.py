from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# ---------------------------------------------------------------------------
# Scrape pipeline
# ---------------------------------------------------------------------------
scrape_requests_total = Counter(
    "scrape_requests_total",
    "Total number of per-URL scrapes by final strategy and outcome",
    ["strategy", "status"],
)
scrape_duration_seconds = Histogram(
    "scrape_duration_seconds",
    "Time spent scraping a single URL",
    buckets=[0.5, 1, 2, 5, 10, 30, 60],
)
scrape_escalations_total = Counter(
    "scrape_escalations_total",
    "Escalations from static extraction to headless rendering",
    ["reason"],
)
scrape_cache_events_total = Counter(
    "scrape_cache_events_total",
    "Scrape cache lookups and writes",
    ["event"],
)

# ---------------------------------------------------------------------------
# Headless browser
# ---------------------------------------------------------------------------
active_browser_contexts = Gauge(
    "active_browser_contexts",
    "Number of headless browser processes currently alive",
)

# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------
document_parse_total = Counter(
    "document_parse_total",
    "Document parse attempts by kind and outcome",
    ["kind", "status"],
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST

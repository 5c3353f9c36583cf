import logging

from pydantic_settings import BaseSettings
from typing import List

_logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # App
    APP_NAME: str = "DeepCite"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Redis: empty URL disables the scrape cache entirely (always-miss)
    REDIS_URL: str = ""
    REDIS_MAX_CONNECTIONS: int = 20

    # Cache
    CACHE_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = 3600

    # Static fetch
    FETCH_TIMEOUT_SECONDS: float = 15.0
    FETCH_MAX_ATTEMPTS: int = 3
    FETCH_MAX_REDIRECTS: int = 5
    FETCH_BACKOFF_BASE: float = 2.0  # wait base**attempt seconds between attempts

    # Headless rendering
    BROWSER_HEADLESS: bool = True
    RENDER_TIMEOUT_MS: int = 30000
    RENDER_SETTLE_MS: int = 2000

    # Content heuristics
    MAX_CONTENT_LENGTH: int = 50000
    MIN_CONTENT_LENGTH: int = 500  # below this, escalate / fall back to body text
    THIN_CONTENT_LENGTH: int = 200  # below this, static result is never kept

    # Fan-out
    MAX_URLS_PER_REQUEST: int = 5

    # Uploads
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Sentry
    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.2
    SENTRY_ENVIRONMENT: str = "development"

    # Logging
    LOG_FORMAT: str = "json"  # "json" for production, "text" for development
    LOG_LEVEL: str = "INFO"

    # Metrics
    METRICS_ENABLED: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def model_post_init(self, __context) -> None:
        if self.THIN_CONTENT_LENGTH > self.MIN_CONTENT_LENGTH:
            _logger.warning(
                "THIN_CONTENT_LENGTH (%s) exceeds MIN_CONTENT_LENGTH (%s); "
                "static results will never be kept after escalation.",
                self.THIN_CONTENT_LENGTH,
                self.MIN_CONTENT_LENGTH,
            )


settings = Settings()

import logging
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from deepcite.api.v1.health import router as health_router
from deepcite.api.v1.router import api_router
from deepcite.config import settings
from deepcite.core.cache import close_scrape_cache
from deepcite.core.exceptions import BadRequestError, bad_request_handler
from deepcite.core.logging_config import configure_logging
from deepcite.middleware.request_id import RequestIDMiddleware

# Must happen before any logger is used
configure_logging(log_format=settings.LOG_FORMAT, log_level=settings.LOG_LEVEL)

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        environment=settings.SENTRY_ENVIRONMENT,
        release=f"deepcite@{settings.APP_VERSION}",
    )

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Browsers are launched per headless render, so there is nothing to warm up
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    yield

    logger.info("Shutting down...")
    await close_scrape_cache()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="DeepCite content acquisition service. "
    "Extracts readable text from web pages, client-rendered apps, PDFs and DOCX files.",
    docs_url="/docs",
    redoc_url="/redoc",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(RequestIDMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(BadRequestError, bad_request_handler)

app.include_router(api_router)
app.include_router(health_router)


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "status": "running",
    }

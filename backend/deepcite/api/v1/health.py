import json
import logging

from fastapi import APIRouter
from fastapi.responses import Response

from deepcite.config import settings
from deepcite.core.cache import get_scrape_cache
from deepcite.core.metrics import get_metrics, get_metrics_content_type

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/health",
    summary="Liveness check",
    description="Returns HTTP 200 if the application process is running.",
)
async def liveness():
    return {"status": "healthy"}


@router.get(
    "/health/ready",
    summary="Readiness check",
    description="Reports the scrape cache backend. Running without a cache is a supported mode and still ready; a configured but unreachable Redis returns HTTP 503.",
)
async def readiness():
    checks = {}
    cache = get_scrape_cache()

    if not cache.enabled:
        checks["cache"] = "disabled"
    else:
        try:
            checks["cache"] = "ok" if await cache.ping() else "error: unreachable"
        except Exception as e:
            checks["cache"] = f"error: {e}"

    ready = all(v in ("ok", "disabled") for v in checks.values())
    return Response(
        content=json.dumps(
            {"status": "ready" if ready else "not ready", "checks": checks}
        ),
        status_code=200 if ready else 503,
        media_type="application/json",
    )


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose application metrics in Prometheus exposition format. Returns HTTP 404 if metrics are disabled.",
)
async def metrics():
    if not settings.METRICS_ENABLED:
        return Response(content="Metrics disabled", status_code=404)

    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type(),
    )

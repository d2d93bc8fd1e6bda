import os
import time
from typing import Any, Dict

import structlog
from django.conf import settings
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

logger = structlog.get_logger()


def _label_dir_writable() -> bool:
    """The label directory exists and is writable, or can be created."""
    path = settings.SHIPPING_LABEL_DIR
    while not os.path.exists(path):
        parent = os.path.dirname(path)
        if parent == str(path):
            return False
        path = parent
    return os.access(path, os.W_OK)


def health_check(request: HttpRequest) -> JsonResponse:
    """Liveness of the stores checkout depends on, plus shipping configuration.

    Database and cache decide the overall status: the cache holds every
    shopper's shipping selection. Carrier credentials and the label
    directory are reported but do not fail the check; without them only
    live rates and labels degrade.
    """
    services: Dict[str, Dict[str, Any]] = {}
    overall_healthy = True

    # Database
    try:
        start = time.monotonic()
        conn = connections["default"]
        conn.ensure_connection()
        with conn.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        services["database"] = {
            "status": "up",
            "response_time_ms": round((time.monotonic() - start) * 1000, 2),
        }
    except Exception:
        services["database"] = {"status": "down"}
        overall_healthy = False
        logger.error("health_check_db_failure")

    # Cache
    try:
        start = time.monotonic()
        cache.set("_health_check", "ok", 10)
        if cache.get("_health_check") != "ok":
            raise ConnectionError("Cache read failed")
        services["cache"] = {
            "status": "up",
            "response_time_ms": round((time.monotonic() - start) * 1000, 2),
        }
    except Exception:
        services["cache"] = {"status": "down"}
        overall_healthy = False
        logger.error("health_check_cache_failure")

    services["carrier"] = {
        "status": "configured" if settings.GSS_API_KEY else "unconfigured",
        "base_url": settings.GSS_API_URL,
    }
    services["label_storage"] = {
        "status": "up" if _label_dir_writable() else "down",
    }
    if services["carrier"]["status"] != "configured":
        logger.warning("health_check_carrier_unconfigured")

    logger.info(
        "health_check_completed", status="healthy" if overall_healthy else "unhealthy"
    )

    return JsonResponse(
        {
            "status": "healthy" if overall_healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if overall_healthy else 503,
    )

"""
Request monitoring middleware: request ids, timing headers, Prometheus
metrics and a structured log line per request.
"""

import logging
import time
import uuid
from typing import Any, Callable, Dict

from fastapi import Request, Response
from prometheus_client import generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

from venueflow.core.database_manager import db_manager
from venueflow.core.metrics import metrics
from venueflow.core.settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def _endpoint_label(request: Request) -> str:
    # Route templates keep label cardinality bounded
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return str(forwarded.split(",")[0].strip())
    return str(request.client.host) if request.client else "unknown"


class MonitoringMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: Any) -> None:
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            self.metrics.record_error(e.__class__.__name__, _endpoint_label(request))
            logger.error(
                "request_failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "duration": round(duration, 4),
                    "error_type": e.__class__.__name__,
                    "client_ip": _client_ip(request),
                },
                exc_info=True,
            )
            raise

        duration = time.time() - start_time
        if settings.monitoring.ENABLE_PROMETHEUS:
            self.metrics.record_request(
                request.method,
                _endpoint_label(request),
                response.status_code,
                duration,
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        logger.info(
            "request_completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration": round(duration, 4),
                "client_ip": _client_ip(request),
            },
        )
        return response


async def get_health_status() -> Dict[str, Any]:
    """Health of the service and its database"""
    db_health = await db_manager.health_check()
    overall_status = "healthy" if db_health.get("status") == "healthy" else "degraded"
    return {
        "status": overall_status,
        "system": {
            "timestamp": time.time(),
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
        },
        "database": db_health,
        "checks": {"database": db_health.get("status") == "healthy"},
    }


async def get_prometheus_metrics() -> str:
    return str(generate_latest().decode("utf-8"))

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pythonjsonlogger.json import JsonFormatter
from starlette.middleware.cors import CORSMiddleware

from venueflow.core.admission import build_admission_lock_manager
from venueflow.core.database_manager import db_manager
from venueflow.core.exceptions import WorkflowError
from venueflow.core.settings import get_settings
from venueflow.initial_data import seed_demo_data
from venueflow.middleware.monitoring import (
    MonitoringMiddleware,
    get_health_status,
    get_prometheus_metrics,
)
from venueflow.redis import close_redis, init_redis
from venueflow.services.workflow import ApprovalWorkflow

from .api.api import api_router

settings = get_settings()

# Configure structured logging
log_handler = logging.StreamHandler()
if settings.monitoring.LOG_FORMAT == "json":
    log_handler.setFormatter(
        JsonFormatter(
            "%(levelname)s %(asctime)s %(message)s %(name)s %(filename)s %(lineno)d",
            rename_fields={
                "levelname": "level",
                "asctime": "time",
                "name": "loggerName",
                "filename": "fileName",
                "lineno": "lineNumber",
            },
        )
    )
else:
    log_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    )
logging.basicConfig(handlers=[log_handler], level=settings.monitoring.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("Starting VenueFlow", extra={"environment": settings.ENVIRONMENT})

    redis_client = None
    if settings.admission.LOCK_BACKEND == "redis":
        redis_client = await init_redis(settings.redis.redis_url)
        logger.info("Redis connection initialized")

    # A fresh lock manager per startup keeps asyncio locks on the running loop
    lock_manager = build_admission_lock_manager(settings.admission, redis_client)
    app.state.workflow = ApprovalWorkflow(lock_manager)
    logger.info(
        "Admission control ready", extra={"lock_backend": lock_manager.backend}
    )

    if settings.database.AUTO_CREATE_TABLES:
        await db_manager.create_all()

    if settings.SEED_DEMO_DATA:
        async with db_manager.get_session() as session:
            await seed_demo_data(session)

    db_health = await db_manager.health_check()
    if db_health.get("status") == "healthy":
        logger.info("Database connection verified")
    else:
        logger.warning("Database health check failed", extra={"health": db_health})

    try:
        yield
    finally:
        logger.info("Shutting down VenueFlow")
        await close_redis()
        await db_manager.close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.PROJECT_DESCRIPTION,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url=f"{settings.API_V1_PREFIX}/docs",
    redoc_url=f"{settings.API_V1_PREFIX}/redoc",
    lifespan=lifespan,
)

app.add_middleware(MonitoringMiddleware)

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.exception_handler(WorkflowError)  # type: ignore[misc]
async def workflow_exception_handler(
    request: Request, exc: WorkflowError
) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


@app.exception_handler(Exception)  # type: ignore[misc]
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception occurred: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


@app.get("/", tags=["Root"], summary="API Welcome Message")  # type: ignore[misc]
async def root() -> dict[str, Any]:
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "version": settings.VERSION,
        "docs": f"{settings.API_V1_PREFIX}/docs",
        "openapi": f"{settings.API_V1_PREFIX}/openapi.json",
        "status": "operational",
    }


@app.get("/health", tags=["Health"], summary="Health Check")  # type: ignore[misc]
async def health_check() -> dict[str, Any]:
    return await get_health_status()


@app.get("/metrics", tags=["Monitoring"], summary="Prometheus Metrics")  # type: ignore[misc]
async def metrics() -> PlainTextResponse:
    """
    Prometheus metrics endpoint for monitoring and alerting.
    """
    if not settings.monitoring.ENABLE_PROMETHEUS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Metrics endpoint is disabled"
        )

    metrics_data = await get_prometheus_metrics()
    return PlainTextResponse(
        content=metrics_data, media_type="text/plain; version=0.0.4; charset=utf-8"
    )

"""Cloud Storage Service - FastAPI application entry point."""

from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.cloud_storage.app.api import (
    files_router,
    health_router,
    objects_router,
    upload_router,
)
from services.cloud_storage.app.api.schemas import ErrorResponse
from services.cloud_storage.app.config import get_settings
from services.cloud_storage.app.errors import CloudStorageError, ErrorCode
from services.cloud_storage.app.middleware.correlation import CorrelationMiddleware
from shared.utils.db import close_db, init_db
from shared.utils.logging import configure_logging, get_logger
from shared.utils.metrics import MetricsMiddleware, metrics_endpoint
from shared.utils.s3 import get_storage_client

settings = get_settings()

configure_logging(
    service_name=settings.service_name,
    log_level=settings.log_level,
    json_format=settings.log_json,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("starting_service", service=settings.service_name)

    init_db(
        database_url=settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        echo=settings.db_echo,
    )
    logger.info("database_initialized")

    app.state.redis = redis.from_url(settings.redis_url, decode_responses=True)
    logger.info("redis_initialized")

    app.state.storage_client = get_storage_client(
        storage_type=settings.storage_type,
        bucket=settings.storage_bucket,
        region=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url,
        local_path=settings.local_storage_path,
        serve_url=settings.local_serve_url,
        local_secret=settings.local_storage_secret,
    )

    yield

    logger.info("shutting_down_service")
    await app.state.redis.aclose()
    await close_db()
    logger.info("service_shutdown_complete")


app = FastAPI(
    title="Cloud Storage Service",
    description="Quota-checked two-phase uploads into per-user cloud storage",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationMiddleware)
app.add_middleware(MetricsMiddleware)


@app.exception_handler(CloudStorageError)
async def cloud_storage_exception_handler(request: Request, exc: CloudStorageError):
    """Render typed errors as {"detail", "error_code"}."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(detail=exc.message, error_code=exc.code.value).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as ParamsCheckFailed."""
    logger.info("request_validation_failed", errors=exc.errors())
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Request parameters are invalid",
            "error_code": ErrorCode.PARAMS_CHECK_FAILED.value,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    correlation_id = getattr(request.state, "correlation_id", None)
    logger.exception("unhandled_exception", error=str(exc), correlation_id=correlation_id)
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An internal error occurred",
            "error_code": "INTERNAL_ERROR",
            "correlation_id": correlation_id,
        },
    )


app.include_router(health_router)
app.include_router(upload_router)
app.include_router(files_router)
app.include_router(objects_router)

app.add_route("/metrics", metrics_endpoint)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.cloud_storage.app.main:app",
        host="0.0.0.0",
        port=8010,
        reload=settings.debug,
    )

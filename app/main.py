"""FastAPI application entry point."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.api.v1.endpoints import health
from app.api.v1.router import api_router
from app.core.config import settings
from app.core.database import close_database, init_database
from app.core.exceptions import AppError
from app.core.temporal_client import reset_temporal_client
from app.utils.logging import get_logger
from app.utils.responses import create_error_detail

LOGGER = get_logger(__name__, level=settings.log_level)


class RootResponse(BaseModel):
    """Root endpoint response payload."""

    message: str = Field(..., description="Service status message")
    version: str = Field(..., description="Running application version")
    docs: str = Field(..., description="Path to the interactive API docs")
    health: str = Field(..., description="Path to the health check endpoint")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    LOGGER.info(
        "Starting application",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "llm_provider": settings.llm_provider,
        },
    )

    try:
        await asyncio.wait_for(init_database(auto_migrate=True), timeout=settings.db_init_timeout)
        LOGGER.info("Database initialized successfully")
    except asyncio.TimeoutError:
        LOGGER.error(f"Database initialization timed out after {settings.db_init_timeout}s")
    except Exception as e:
        LOGGER.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    LOGGER.info("Shutting down application")
    reset_temporal_client()
    await close_database()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Document intake and AI benefit analysis for healthcare practices",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


@app.middleware("http")
async def add_correlation_id(request: Request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid4()))
    request.state.correlation_id = correlation_id
    request.state.request_id = correlation_id
    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render domain errors as RFC 7807 problem details."""
    if exc.status_code >= 500:
        LOGGER.error(
            f"{exc.title}: {exc.message}",
            exc_info=exc.original_error,
            extra={"path": request.url.path},
        )
    else:
        LOGGER.info(f"{exc.title}: {exc.message}", extra={"path": request.url.path})

    error_detail = create_error_detail(
        title=exc.title,
        status=exc.status_code,
        detail=exc.message,
        request=request,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_detail.model_dump(mode="json"),
        media_type="application/problem+json",
    )


# CORS middleware - added last to ensure it wraps all other middleware/responses
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID"],
)

app.include_router(api_router, prefix=settings.api_v1_prefix)
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get(
    "/",
    response_model=RootResponse,
    tags=["Root"],
    summary="Root endpoint",
    description="Get basic information about the API",
    operation_id="get_public_root_metadata",
)
async def root() -> RootResponse:
    """Root endpoint.

    Returns:
        RootResponse: Basic API information
    """
    return RootResponse(
        message="Server is running",
        version=settings.app_version,
        docs="/docs",
        health="/health",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )

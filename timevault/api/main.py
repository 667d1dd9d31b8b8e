"""FastAPI application entry point."""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from timevault.api.dependencies import demo_caller, get_memory_store
from timevault.api.routes import health, transactions, users, watches
from timevault.application.use_cases.listing_manager import flush_side_writes
from timevault.config import settings
from timevault.domain.errors import AppError
from timevault.infrastructure.database.connection import dispose_engine
from timevault.infrastructure.memory.seed_data import seed_demo_store
from timevault.logging_config import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging(settings.log_level)
    logger.info("timevault_starting", demo_mode=settings.demo_mode)

    if settings.demo_mode and settings.seed_demo_data:
        await seed_demo_store(get_memory_store(), demo_caller())

    yield

    await flush_side_writes()
    if not settings.demo_mode:
        await dispose_engine()
    logger.info("timevault_stopping")


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("request_failed", path=request.url.path, kind=exc.kind, message=exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": exc.kind, "message": exc.message},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "InternalError", "message": "Something went wrong"},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="TimeVault",
        description="Marketplace backend for buying and selling watches.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health.router)
    app.include_router(watches.router)
    app.include_router(transactions.router)
    app.include_router(users.router)

    return app


app = create_app()

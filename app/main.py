"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- API routes
- Middleware (logging, CORS)
- Exception handlers for the attribution error taxonomy
- Startup/shutdown work (tables in development, rate-limit sweep)
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import endpoints
from app.api.dependencies import get_current_pipeline
from app.api.error_handlers import add_error_handlers
from app.core.logging import configure_logging
from app.core.rate_limit import click_limiter, redirect_limiter
from app.core.setting import EnvSettingsOptions, settings
from app.db.session import create_tables, engine
from app.middleware.logging import add_logging_middleware
from app.services.background_tasks import sweep_rate_limiters

configure_logging(settings.LOG_LEVEL)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.ENV_SETTING == EnvSettingsOptions.development:
        await create_tables()

    sweeper = None
    if settings.RATE_LIMIT_SWEEP_INTERVAL > 0:
        sweeper = asyncio.create_task(
            sweep_rate_limiters(
                [click_limiter, redirect_limiter],
                settings.RATE_LIMIT_SWEEP_INTERVAL,
            )
        )

    yield

    if sweeper is not None:
        sweeper.cancel()

    pipeline = get_current_pipeline()
    if pipeline is not None:
        # Let detached click writes finish before the engine goes away
        await pipeline.drain()

    await engine.dispose()
    logger.info("Click attribution service stopped")


app = FastAPI(
    title="Affiliate Click Attribution Service",
    description="Click tracking and tracked redirects for an affiliate link directory",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

add_error_handlers(app)
add_logging_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Health"])
async def root():
    return {
        "message": "Affiliate Click Attribution Service",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy"}


app.include_router(endpoints.router, tags=["Click Attribution"])

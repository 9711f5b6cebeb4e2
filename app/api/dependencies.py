"""
FastAPI Dependencies

Wires the attribution pipeline to the SQL stores and the process-wide rate
limiters. Tests replace get_pipeline through app.dependency_overrides.
"""

from typing import Optional

from fastapi import Request
from slowapi.util import get_remote_address

from app.core.rate_limit import click_limiter, redirect_limiter
from app.db.session import async_session_maker
from app.db.stores import SQLEventStore, SQLLinkStore
from app.services.attribution_pipeline import AttributionPipeline

# One pipeline per process, created on first use
_pipeline: Optional[AttributionPipeline] = None


def get_client_ip(request: Request) -> str:
    """
    Network address of the client, taken from the transport layer.

    Forwarding headers are not read here. Behind a trusted proxy, run uvicorn
    with --proxy-headers/--forwarded-allow-ips so request.client is rewritten
    before it reaches the application.
    """
    return get_remote_address(request)


def get_pipeline() -> AttributionPipeline:
    global _pipeline

    if _pipeline is None:
        _pipeline = AttributionPipeline(
            link_store=SQLLinkStore(async_session_maker),
            event_store=SQLEventStore(async_session_maker),
            click_limiter=click_limiter,
            redirect_limiter=redirect_limiter,
        )
    return _pipeline


def get_current_pipeline() -> Optional[AttributionPipeline]:
    """The pipeline if one was created, without creating it."""
    return _pipeline

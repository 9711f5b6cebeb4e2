"""
Exception Handlers

Renders every AttributionServiceError as a JSON body with a stable
`error` / `message` pair and the status code the exception declares.
Rate-limited responses also tell the client how long to back off.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.exceptions import AttributionServiceError, RateLimitedError


async def attribution_error_handler(request: Request, exc: AttributionServiceError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=headers,
    )


def add_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AttributionServiceError, attribution_error_handler)

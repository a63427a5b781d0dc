"""
Domain errors raised by the analysis services, and the FastAPI handlers
that turn them into JSON responses.

    NotFoundError              -> 404
    InvalidConfigurationError  -> 400
      EmptyResultError         -> 400
    UpstreamFetchError         -> 500
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AnalyticsError(Exception):
    status_code = 500

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(AnalyticsError):
    status_code = 404


class InvalidConfigurationError(AnalyticsError):
    status_code = 400


class EmptyResultError(InvalidConfigurationError):
    """A chart built from a valid request ended up with nothing to draw."""


class UpstreamFetchError(AnalyticsError):
    status_code = 500


async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.details)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)

    body = {"detail": exc.message}
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AnalyticsError, analytics_error_handler)

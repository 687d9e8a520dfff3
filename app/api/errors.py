"""
HTTP mapping for catalog and sync errors.

| exception               | status |
|-------------------------|--------|
| ConfigurationError      | 503    |
| TransportError          | 504    |
| UpstreamError (429)     | 429    |
| UpstreamError (other)   | 502    |
| ParseError              | 502    |
| CatalogRecordNotFound   | 404    |
| ValueError              | 400    |
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.logging import get_logger
from app.services.catalog.exceptions import (
    CatalogRecordNotFound,
    ConfigurationError,
    ParseError,
    TransportError,
    UpstreamError,
)

logger = get_logger(__name__)


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "detail": detail})


async def configuration_error_handler(request: Request, exc: ConfigurationError):
    return _error(503, "IGDB not configured", str(exc))


async def transport_error_handler(request: Request, exc: TransportError):
    logger.warning(f"IGDB unreachable during {request.url.path}: {exc}")
    return _error(504, "IGDB unavailable", str(exc))


async def upstream_error_handler(request: Request, exc: UpstreamError):
    if exc.is_rate_limited:
        response = _error(429, "IGDB rate limit exceeded", "Too many requests to IGDB, try again shortly.")
        response.headers["Retry-After"] = "1"
        return response
    return _error(502, "IGDB error", f"IGDB returned HTTP {exc.status}")


async def parse_error_handler(request: Request, exc: ParseError):
    logger.error(f"IGDB contract violation during {request.url.path}: {exc}")
    return _error(502, "Invalid IGDB response", str(exc))


async def not_found_handler(request: Request, exc: CatalogRecordNotFound):
    return _error(404, "Not found", str(exc))


async def value_error_handler(request: Request, exc: ValueError):
    return _error(400, "Invalid request", str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(TransportError, transport_error_handler)
    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.add_exception_handler(ParseError, parse_error_handler)
    app.add_exception_handler(CatalogRecordNotFound, not_found_handler)
    app.add_exception_handler(ValueError, value_error_handler)

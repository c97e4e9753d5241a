"""
HTTP and validation error handlers.

Every failing request answers with ``{"error": "<message>"}``. Validation
failures additionally list the offending fields.
"""

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from safetrade.core.logging_config import get_logger

logger = get_logger(__name__)


def _field_name(loc) -> str:
    # Drop the leading "body"/"query"/"path" marker
    parts = [str(part) for part in loc[1:]] or [str(part) for part in loc]
    return ".".join(parts)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render an HTTPException as ``{"error": detail}``.

    A dict detail is merged into the body so routes can attach extra keys.
    """
    if isinstance(exc.detail, dict):
        content = dict(exc.detail)
        content.setdefault("error", "Request failed")
    else:
        content = {"error": exc.detail}

    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {content['error']}")
    else:
        logger.debug(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {content['error']}")

    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation errors as a 400 with per-field messages."""
    details = [{"field": _field_name(error.get("loc", ())), "message": error.get("msg", "")} for error in exc.errors()]
    logger.debug(f"Validation failed on {request.method} {request.url.path}: {details}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation failed", "details": details},
    )

"""Translation of marketplace errors to HTTP responses."""

import logging
from typing import Any, Dict

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..config import settings_conf
from ..exceptions import MarketplaceError, StoreError, ValidationError

logger = logging.getLogger(__name__)

def error_detail(kind: str, message: str) -> Dict[str, Any]:
    return {"error": kind, "message": message}

def http_error(e: Exception) -> HTTPException:
    """Build the HTTPException for an error raised by a manager.

    Unexpected exceptions are logged and reported as store errors. Messages
    of 5xx errors are replaced by a generic one unless expose_error_details
    is enabled.
    """
    if isinstance(e, MarketplaceError):
        kind, status_code = e.kind, e.status_code
    else:
        logger.error(f"Unexpected error: {e}")
        kind, status_code = StoreError.kind, StoreError.status_code

    message = str(e)
    if status_code >= 500 and not settings_conf['expose_error_details']:
        message = "Internal server error"

    detail = error_detail(kind, message)
    order_id = getattr(e, 'order_id', None)
    if order_id:
        detail['order_id'] = order_id

    return HTTPException(status_code=status_code, detail=detail)

async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters as 400."""
    problems = []
    for error in exc.errors():
        location = '.'.join(str(part) for part in error.get('loc', ()) if part != 'body')
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get('msg')))

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": error_detail(ValidationError.kind, '; '.join(problems) or "Invalid request")}
    )

async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    """Report errors raised outside a route's own handling, such as in dependencies."""
    error = http_error(exc)
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})

__all__ = ['error_detail', 'http_error', 'marketplace_error_handler', 'request_validation_handler']

"""
Maps PremiumError subclasses to JSON responses.
Business errors keep their status code; StorageFailure is a 503.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tipster.core.errors import PremiumError, StorageFailure

logger = logging.getLogger(__name__)


async def premium_error_handler(request: Request, exc: PremiumError) -> JSONResponse:
    if isinstance(exc, StorageFailure):
        logger.error("storage_failure", extra={"error": exc.details.get("cause"), "error_code": exc.error_code})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PremiumError, premium_error_handler)

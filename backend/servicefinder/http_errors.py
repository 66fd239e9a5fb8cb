import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from servicefinder.auth import USER_ID_HEADER
from servicefinder.services.database import (
    StoreError,
    StoreNotFoundError,
    StorePermissionError,
)

logger = logging.getLogger(__name__)


def raise_store_http_error(exc: StoreError) -> None:
    if isinstance(exc, StoreNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, StorePermissionError):
        raise HTTPException(status_code=403, detail=str(exc))
    # Validation and conflict (duplicate email) errors are both plain bad requests.
    raise HTTPException(status_code=400, detail=str(exc))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request payload", "errors": jsonable_encoder(exc.errors())},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    @app.middleware("http")
    async def _internal_error_guard(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception(
                "Unhandled error on %s %s (caller=%s)",
                request.method,
                request.url.path,
                request.headers.get(USER_ID_HEADER, "-"),
            )
            return JSONResponse(status_code=500, content={"detail": "Internal server error"})

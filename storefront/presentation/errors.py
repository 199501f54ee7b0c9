import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.domain.exceptions import (
    DomainException, ValidationError, NotFoundError, OutOfStockError, ConflictError,
    AuthError, ForbiddenError, StorageError,
)

logger = logging.getLogger(__name__)


# Map exception types to HTTP status codes; subclasses resolve through the MRO
ERROR_STATUS_CODES: dict[type, int] = {
    ValidationError: 400,
    OutOfStockError: 400,
    AuthError: 401,
    ForbiddenError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    StorageError: 500,
}


def status_code_for(exc: DomainException) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


async def domain_error_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Map DomainException subclasses to appropriate HTTP responses."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}", exc_info=exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": "Server error", "error_type": type(exc).__name__},
        )

    content = {"detail": str(exc), "error_type": type(exc).__name__}
    field = getattr(exc, "field", None)
    if field:
        content["field"] = field
    headers = {"WWW-Authenticate": "ApiKey"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Invalid request",
            "error_type": "ValidationError",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc!r}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

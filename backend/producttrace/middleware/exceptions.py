"""Exception handlers for consistent error responses.

Every error leaves the API in one shape:

    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable error message",
            "details": {...}  // Optional additional details
        }
    }

Ledger rejections carry their own status and code (see producttrace.errors).
The remaining handlers cover what can still go wrong around them:

    request validation          422 VALIDATION_ERROR
    id taken by another writer  409 LEDGER_ID_CONFLICT    (shared database file)
    database file locked        503 LEDGER_BUSY           (Retry-After)
    database unreachable        503 DATABASE_UNAVAILABLE
    anything else               500 INTERNAL_SERVER_ERROR
"""

import logging
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from producttrace.errors import LedgerError

logger = logging.getLogger(__name__)

# Tables whose primary keys the ledger allocates itself (max + 1)
ALLOCATED_ID_TABLES = ("products", "production_batches", "batch_inputs")

# Request locations FastAPI prefixes onto every validation error
_LOCATIONS = ("body", "path", "query", "header")


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
    headers: dict | None = None,
) -> JSONResponse:
    content = {
        "error": {
            "code": error_code,
            "message": message,
        }
    }

    if details:
        content["error"]["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=headers,
    )


async def ledger_exception_handler(
    request: Request,
    exc: LedgerError,
) -> JSONResponse:
    """Render a rejected ledger operation."""
    logger.warning(
        f"Ledger rejected {request.method} {request.url.path}: {exc.error_code} - {exc.message}",
        extra={
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )

    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details,
    )


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    # 401 from get_caller carries WWW-Authenticate
    return create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=f"HTTP_{exc.status_code}",
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Malformed request: wrong types, negative quantities, over-long strings."""
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error["loc"]]
        location = loc.pop(0) if loc and loc[0] in _LOCATIONS else "body"
        errors.append({
            "location": location,
            "field": ".".join(loc),
            "message": error["msg"],
            "type": error["type"],
        })

    logger.info(
        f"Invalid request {request.method} {request.url.path}: "
        + ", ".join(f"{e['location']}:{e['field']}" for e in errors)
    )

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation error",
        error_code="VALIDATION_ERROR",
        details={"errors": errors},
    )


async def database_exception_handler(
    request: Request,
    exc: IntegrityError,
) -> JSONResponse:
    """A constraint fired at commit.

    Inside one process the write lock rules this out.  It happens when a
    second process writes the same database and allocated the same id first;
    the operation was rolled back and can be retried.
    """
    error_msg = str(exc.orig) if exc.orig is not None else str(exc)
    logger.error(f"Integrity error on {request.method} {request.url.path}: {error_msg}")

    lowered = error_msg.lower()
    if ("unique" in lowered or "duplicate" in lowered) and any(
        table in lowered for table in ALLOCATED_ID_TABLES
    ):
        return create_error_response(
            status_code=status.HTTP_409_CONFLICT,
            message="Another writer took the same ledger id; nothing was recorded, retry the operation",
            error_code="LEDGER_ID_CONFLICT",
        )

    return create_error_response(
        status_code=status.HTTP_409_CONFLICT,
        message="Ledger constraint violation; nothing was recorded",
        error_code="INTEGRITY_ERROR",
    )


async def operational_exception_handler(
    request: Request,
    exc: OperationalError,
) -> JSONResponse:
    """The database could not run the operation; nothing was recorded."""
    error_msg = str(exc.orig) if exc.orig is not None else str(exc)
    logger.error(f"Database operational error on {request.method} {request.url.path}: {error_msg}")

    if "locked" in error_msg.lower():
        # SQLite: another process holds the write lock on the ledger file
        return create_error_response(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            message="The ledger is busy with another writer. Please retry.",
            error_code="LEDGER_BUSY",
            headers={"Retry-After": "1"},
        )

    return create_error_response(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        message="Ledger database unavailable. Please try again.",
        error_code="DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)

    # Internal details stay in the log
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred. Please try again later.",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(LedgerError, ledger_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, database_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

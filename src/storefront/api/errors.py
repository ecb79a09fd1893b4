"""Exception handlers rendering failures as ``{success: false, error}`` envelopes."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, InvalidOperationError, ObjectNotFoundError, ValidationError

from storefront.errors import OrderNumberUnavailable, Unauthorized, first_message
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _envelope(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        field = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = errors[0].get("msg", "Invalid request")
        return _envelope(400, f"{field}: {message}" if field else message)
    return _envelope(400, "Invalid request")


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return _envelope(400, first_message(exc))


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return _envelope(404, first_message(exc))


async def _invalid_operation(request: Request, exc: InvalidOperationError) -> JSONResponse:
    if isinstance(exc, Unauthorized):
        status_code = 403
    elif isinstance(exc, OrderNumberUnavailable):
        status_code = 409
    else:
        status_code = 400
    return _envelope(status_code, first_message(exc))


async def _version_conflict(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.info("version_conflict", path=request.url.path, method=request.method)
    return _envelope(409, "The resource was changed by another request, please retry")


async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    return _envelope(500, "Server error")


def register_envelope_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(InvalidOperationError, _invalid_operation)
    app.add_exception_handler(ExpectedVersionError, _version_conflict)
    app.add_exception_handler(Exception, _unexpected)

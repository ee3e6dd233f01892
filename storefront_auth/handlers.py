import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront_auth.config import settings
from storefront_auth.errors import AuthError, NotAuthenticated, ResendCooldown
from storefront_auth.schemas.errors import ErrorResponse

LOGGER = logging.getLogger(__name__)


def _json(status_code: int, payload: ErrorResponse, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=payload.model_dump(exclude_none=True),
        headers=headers,
    )


async def _auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    payload = ErrorResponse(message=exc.message, error=exc.kind.value)
    headers = None
    if isinstance(exc, NotAuthenticated):
        payload.redirect_to = settings.login_path
    if isinstance(exc, ResendCooldown):
        payload.retry_after_seconds = exc.retry_after_seconds
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    LOGGER.info(
        "auth_error | method=%s path=%s kind=%s",
        request.method,
        request.url.path,
        exc.kind.value,
    )
    return _json(exc.status_code, payload, headers)


async def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    error_messages = []
    for err in exc.errors():
        field_path = " -> ".join(str(loc) for loc in err.get("loc", []) if loc != "body")
        error_messages.append(f"{field_path}: {err.get('msg', 'Invalid input')}")
    LOGGER.warning(
        "validation_error | method=%s path=%s errors=%s",
        request.method,
        request.url.path,
        error_messages,
    )
    if len(error_messages) == 1:
        payload = ErrorResponse(message=error_messages[0])
    else:
        payload = ErrorResponse(message="Invalid request data", errors=error_messages)
    return _json(status.HTTP_422_UNPROCESSABLE_ENTITY, payload)


async def _general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.error(
        "unhandled_error | method=%s path=%s error=%s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return _json(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorResponse(message="Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, _auth_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _general_exception_handler)

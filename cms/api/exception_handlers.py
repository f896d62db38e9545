"""Global exception handlers that map domain exceptions to HTTP responses.

API requests (``/api/...``) get a JSON :class:`ErrorResponse`; page requests
get a redirect to the login form (401) or the rendered error page.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from cms.errors import (
    FORBIDDEN,
    HTTP_ERROR,
    INTERNAL_ERROR,
    NOT_FOUND,
    UNAUTHORIZED,
    VALIDATION_ERROR,
    DomainValidationError,
    FieldError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)
from cms.pages.common import flash, redirect, render
from cms.schemas.error import ErrorResponse, FieldErrorDetail

logger = logging.getLogger(__name__)


def is_api_request(request: Request) -> bool:
    return request.url.path.startswith("/api")


def _error_response(
    status_code: int,
    detail: str,
    code: str,
    errors: list[FieldError] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Return a standardized error response with detail and machine-readable code."""
    body = ErrorResponse(
        detail=detail,
        code=code,
        errors=[FieldErrorDetail(field=e.field, message=e.message) for e in errors]
        if errors is not None
        else None,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def _error_page(request: Request, status_code: int, message: str) -> Response:
    return render(
        request,
        "pages/error.html",
        {"title": "Error", "status_code": status_code, "message": message},
        status_code=status_code,
    )


def domain_validation_error_handler(
    request: Request, exc: DomainValidationError
) -> Response:
    if not is_api_request(request):
        return _error_page(
            request, status.HTTP_422_UNPROCESSABLE_ENTITY, " ".join(exc.messages())
        )
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        str(exc),
        VALIDATION_ERROR,
        errors=exc.errors,
    )


def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> Response:
    errors = [
        FieldError(
            field=".".join(str(part) for part in err["loc"] if part not in ("body", "query", "path")),
            message=err["msg"],
        )
        for err in exc.errors()
    ]
    return domain_validation_error_handler(request, DomainValidationError(errors))


def not_found_error_handler(request: Request, exc: NotFoundError) -> Response:
    if not is_api_request(request):
        return _error_page(request, status.HTTP_404_NOT_FOUND, str(exc))
    return _error_response(status.HTTP_404_NOT_FOUND, str(exc), NOT_FOUND)


def forbidden_error_handler(request: Request, exc: ForbiddenError) -> Response:
    if not is_api_request(request):
        return _error_page(request, status.HTTP_403_FORBIDDEN, str(exc))
    return _error_response(status.HTTP_403_FORBIDDEN, str(exc), FORBIDDEN)


def unauthorized_error_handler(request: Request, exc: UnauthorizedError) -> Response:
    if not is_api_request(request):
        flash(request, "Please log in to continue.", "warning")
        return redirect("/auth/login")
    return _error_response(
        status.HTTP_401_UNAUTHORIZED,
        str(exc),
        UNAUTHORIZED,
        headers={"WWW-Authenticate": "Bearer"},
    )


def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    if not is_api_request(request):
        return _error_page(request, exc.status_code, str(exc.detail))
    code = NOT_FOUND if exc.status_code == status.HTTP_404_NOT_FOUND else HTTP_ERROR
    return _error_response(exc.status_code, str(exc.detail), code, headers=exc.headers)


def unhandled_error_handler(request: Request, exc: Exception) -> Response:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if not is_api_request(request):
        return _error_page(
            request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Something went wrong."
        )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", INTERNAL_ERROR
    )


def register_exception_handlers(app):
    """Register domain exception handlers on the FastAPI app."""
    app.add_exception_handler(DomainValidationError, domain_validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(ForbiddenError, forbidden_error_handler)
    app.add_exception_handler(NotFoundError, not_found_error_handler)
    app.add_exception_handler(UnauthorizedError, unauthorized_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

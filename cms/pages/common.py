"""Helpers shared by the server-rendered page routers."""

from fastapi import Depends, Request, status
from fastapi.responses import RedirectResponse, Response

from cms.api.deps import COOKIE_NAME, page_auth
from cms.core.config import settings
from cms.core.security import TokenService
from cms.db.models.user import User
from cms.errors import DomainValidationError
from cms.templating import templates

FLASH_KEY = "_flashes"


def flash(request: Request, message: str, category: str = "info") -> None:
    """Queue a one-time message for the next rendered page."""
    flashes = request.session.get(FLASH_KEY, [])
    flashes.append([category, message])
    request.session[FLASH_KEY] = flashes


def pop_flashes(request: Request) -> list[list[str]]:
    if "session" not in request.scope:
        return []
    return request.session.pop(FLASH_KEY, [])


def load_navigation_user(
    request: Request, user: User | None = Depends(page_auth.optional_user)
) -> None:
    """Expose the live signed-in user to the page chrome."""
    request.state.current_user = user


def render(
    request: Request,
    name: str,
    context: dict | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    page_context = {
        "current_user": getattr(request.state, "current_user", None),
        "flashes": pop_flashes(request),
    }
    page_context.update(context or {})
    return templates.TemplateResponse(request, name, page_context, status_code=status_code)


def render_form_errors(
    request: Request,
    name: str,
    exc: DomainValidationError,
    form: dict,
    context: dict | None = None,
) -> Response:
    """Re-render a form with its errors and the submitted values, minus passwords."""
    kept = {k: v for k, v in form.items() if "password" not in k}
    page_context = {"form": kept, "errors": exc.errors}
    page_context.update(context or {})
    return render(request, name, page_context, status.HTTP_422_UNPROCESSABLE_ENTITY)


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def set_auth_cookie(response: Response, token: str, tokens: TokenService) -> None:
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=tokens.max_age_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(COOKIE_NAME, httponly=True, samesite="lax")

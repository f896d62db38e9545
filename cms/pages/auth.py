from fastapi import APIRouter, Depends, Form, Request, status
from sqlalchemy.orm import Session

from cms.api.deps import get_db
from cms.core.security import TokenService, get_token_service
from cms.errors import DomainValidationError, FieldError, UnauthorizedError
from cms.pages.common import (
    clear_auth_cookie,
    flash,
    redirect,
    render,
    render_form_errors,
    set_auth_cookie,
)
from cms.schemas.user import ActivationRequest, LoginRequest, PasswordReset, SignupRequest
from cms.services import auth as auth_service

router = APIRouter(prefix="/auth", include_in_schema=False)


def _logged_in(
    request: Request,
    result: auth_service.AuthResult,
    tokens: TokenService,
    url: str,
    message: str,
):
    """Redirect with the identity cookie set."""
    flash(request, message, "success")
    response = redirect(url)
    set_auth_cookie(response, result.token, tokens)
    return response


@router.get("/signup")
def signup_form(request: Request):
    return render(request, "auth/signup.html", {"title": "Signup", "form": {}})


@router.post("/signup")
async def signup(
    request: Request,
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    password_confirmation: str = Form(""),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    data = SignupRequest(
        username=username,
        email=email,
        password=password,
        password_confirmation=password_confirmation,
    )
    try:
        result = await auth_service.signup(db, data, tokens)
    except DomainValidationError as e:
        return render_form_errors(
            request, "auth/signup.html", e, data.model_dump(), {"title": "Signup"}
        )

    if result is None:
        flash(request, "Please check your email to activate your account.", "info")
        return redirect("/")
    return _logged_in(request, result, tokens, result.user.url, "Account Created.")


@router.get("/activate-account")
def activate_account(
    request: Request,
    email: str = "",
    token: str = "",
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    if not email or not token:
        flash(request, "Token or email was not provided.", "warning")
        return redirect("/")

    result = auth_service.activate_account(db, ActivationRequest(email=email, token=token), tokens)
    if result is None:
        flash(request, "Could not activate account.", "warning")
        return redirect("/")
    return _logged_in(request, result, tokens, result.user.url, "Your account is activated.")


@router.get("/login")
def login_form(request: Request):
    return render(request, "auth/login.html", {"title": "Log In", "form": {}})


@router.post("/login")
def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    data = LoginRequest(email=email, password=password)
    try:
        result = auth_service.login(db, data, tokens)
    except DomainValidationError as e:
        return render_form_errors(
            request, "auth/login.html", e, {"email": email}, {"title": "Log In"}
        )
    except UnauthorizedError as e:
        return render(
            request,
            "auth/login.html",
            {
                "title": "Log In",
                "form": {"email": email},
                "errors": [FieldError("email", str(e))],
            },
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    return _logged_in(request, result, tokens, "/", "You are logged in.")


@router.get("/logout")
def logout(request: Request):
    flash(request, "Logged out.", "info")
    response = redirect("/")
    clear_auth_cookie(response)
    return response


@router.get("/forgot-password")
def forgot_password_form(request: Request):
    return render(request, "auth/forgot_password.html", {"title": "Forgot Password", "form": {}})


@router.post("/forgot-password")
async def forgot_password(
    request: Request,
    email: str = Form(""),
    db: Session = Depends(get_db),
):
    try:
        await auth_service.forgot_password(db, email)
    except DomainValidationError as e:
        return render_form_errors(
            request,
            "auth/forgot_password.html",
            e,
            {"email": email},
            {"title": "Forgot Password"},
        )
    flash(request, "Email sent with password reset instructions.", "info")
    return redirect("/")


@router.get("/reset-password")
def reset_password_form(request: Request, email: str = "", token: str = ""):
    return render(
        request,
        "auth/reset_password.html",
        {"title": "Reset Password", "form": {"email": email, "token": token}},
    )


@router.post("/reset-password")
def reset_password(
    request: Request,
    email: str = Form(""),
    token: str = Form(""),
    password: str = Form(""),
    password_confirmation: str = Form(""),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    data = PasswordReset(
        email=email,
        token=token,
        password=password,
        password_confirmation=password_confirmation,
    )
    try:
        result = auth_service.reset_password(db, data, tokens)
    except DomainValidationError as e:
        return render_form_errors(
            request,
            "auth/reset_password.html",
            e,
            {"email": email, "token": token},
            {"title": "Reset Password"},
        )
    return _logged_in(request, result, tokens, result.user.url, "Password has been reset.")

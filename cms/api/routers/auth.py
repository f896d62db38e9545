from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from cms.api.deps import get_db, require_authenticated
from cms.core.security import TokenService, get_token_service
from cms.db.models.user import User as UserModel
from cms.errors import DomainValidationError
from cms.pages.common import clear_auth_cookie
from cms.schemas.user import (
    ActivationRequest,
    LoginRequest,
    Message,
    PasswordReset,
    PasswordResetRequest,
    SignupRequest,
    Token,
    User,
)
from cms.services import auth as auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(result: auth_service.AuthResult) -> Token:
    return Token(token=result.token, user=result.identity)


@router.post(
    "/signup",
    response_model=Token,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_202_ACCEPTED: {"model": Message}},
)
async def signup(
    data: SignupRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Register a new account.

    Returns the token and identity (201), or a notice that an activation email
    was sent (202) when account activation is required.
    """
    result = await auth_service.signup(db, data, tokens)
    if result is None:
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content={"message": "Please check your email to activate your account."},
        )
    return _token_response(result)


@router.post("/activate-account", response_model=Token)
def activate_account(
    data: ActivationRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """Activate an account with the emailed token and log the user in."""
    result = auth_service.activate_account(db, data, tokens)
    if result is None:
        raise DomainValidationError.single("token", "Could not activate account.")
    return _token_response(result)


@router.post("/login", response_model=Token)
def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """Login endpoint - returns the identity token in the response body."""
    return _token_response(auth_service.login(db, data, tokens))


@router.get("/logout", response_model=Message)
def logout():
    """Clears the token cookie. Bearer clients simply discard their token."""
    response = JSONResponse(content={"message": "logged out"})
    clear_auth_cookie(response)
    return response


@router.post("/forgot-password", response_model=Message)
async def forgot_password(data: PasswordResetRequest, db: Session = Depends(get_db)):
    """Request password reset - sends email with reset token."""
    await auth_service.forgot_password(db, data.email)
    return Message(message="Email sent with password reset instructions.")


@router.post("/reset-password", response_model=Token)
def reset_password(
    data: PasswordReset,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """Reset password using the emailed token; returns a fresh identity token."""
    return _token_response(auth_service.reset_password(db, data, tokens))


@router.get("/me", response_model=User)
def get_current_user_info(current_user: UserModel = Depends(require_authenticated)):
    """Get current authenticated user information."""
    return User.model_validate(current_user)

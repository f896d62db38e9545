"""Auth service: signup, activation, login and the password reset flow."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import aiosmtplib
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

import cms.repositories.user as user_repo
from cms.core.config import settings
from cms.core.security import (
    TokenService,
    generate_url_safe_token,
    get_password_hash,
    verify_password,
)
from cms.db.models.user import User as UserModel
from cms.domain.password_reset import PasswordResetWindow
from cms.errors import DomainValidationError, UnauthorizedError
from cms.schemas.user import ActivationRequest, Identity, LoginRequest, PasswordReset, SignupRequest
from cms.services.email import send_activation_email, send_password_reset_email
from cms.services.validation import (
    ValidationCollector,
    check_email,
    check_password,
    check_username,
    normalize_email,
)

logger = logging.getLogger(__name__)

EMAIL_IN_USE = "Email is already in use"
INCORRECT_CREDENTIALS = "Email or password is incorrect."
NOT_ACTIVATED = "Account not activated. Check your email for activation link."
EMAIL_NOT_FOUND = "Email address not found."
INVALID_RESET = "Reset email or token is invalid"
RESET_EXPIRED = "Password Reset has Expired."


@dataclass(frozen=True)
class AuthResult:
    """A user together with a freshly issued identity token."""

    user: UserModel
    token: str

    @property
    def identity(self) -> Identity:
        return identity_for(self.user)


def identity_for(user: UserModel) -> Identity:
    return Identity(id=user.id, username=user.username, role=user.role)


def _issue(tokens: TokenService, user: UserModel) -> AuthResult:
    return AuthResult(user=user, token=tokens.issue(identity_for(user)))


async def signup(db: Session, data: SignupRequest, tokens: TokenService) -> AuthResult | None:
    """
    Register a new account.

    Without activation the account is active immediately and a token is
    returned. With ``ACCOUNT_ACTIVATION_REQUIRED`` an activation email is sent
    and ``None`` is returned; the user logs in after activating.

    Raises:
        DomainValidationError: With every failing field rule.
    """
    require_activation = settings.account_activation_required
    # Hashing and the blocking queries stay off the event loop
    user = await run_in_threadpool(_register, db, data, require_activation)

    if require_activation:
        logger.info("User %s signed up, awaiting activation", user.id)
        try:
            await send_activation_email(user.username, user.email, user.activation_token)
        except (ValueError, aiosmtplib.SMTPException) as e:
            logger.error("Failed to send activation email: %s", e)
        return None

    logger.info("User %s signed up", user.id)
    return _issue(tokens, user)


def _register(db: Session, data: SignupRequest, require_activation: bool) -> UserModel:
    collector = ValidationCollector()
    username = check_username(collector, data.username)
    email = check_email(collector, data.email)
    if not collector.has_errors_for("email") and user_repo.get_user_by_email(db, email):
        collector.add("email", EMAIL_IN_USE)
    check_password(collector, data.password, data.password_confirmation)
    collector.raise_if_errors()

    try:
        return user_repo.create_user(
            db,
            username=username,
            email=email,
            password_hash=get_password_hash(data.password),
            activated=not require_activation,
            activation_token=generate_url_safe_token() if require_activation else None,
        )
    except IntegrityError:
        # Lost a race with a concurrent signup for the same email
        db.rollback()
        raise DomainValidationError.single("email", EMAIL_IN_USE)


def activate_account(db: Session, data: ActivationRequest, tokens: TokenService) -> AuthResult | None:
    """
    Activate an account from the emailed link.

    Returns ``None`` instead of raising when the link is incomplete or does not
    match; callers show a generic warning.
    """
    if not data.email or not data.token:
        return None

    user = user_repo.get_user_by_email(db, normalize_email(data.email))
    if (
        not user
        or not user.activation_token
        or not secrets.compare_digest(user.activation_token, data.token)
    ):
        logger.warning("Rejected activation attempt for %s", data.email)
        return None

    user = user_repo.activate_user(db, user.id)
    logger.info("User %s activated", user.id)
    return _issue(tokens, user)


def login(db: Session, data: LoginRequest, tokens: TokenService) -> AuthResult:
    """
    Authenticate user by email and password.

    Raises:
        DomainValidationError: If email or password is blank.
        UnauthorizedError: If email not found or password incorrect (same message
            for both), or the account still awaits activation.
    """
    collector = ValidationCollector()
    email = normalize_email(data.email)
    if not email:
        collector.add("email", "Email cannot be blank.")
    if not data.password:
        collector.add("password", "Password cannot be blank.")
    collector.raise_if_errors()

    user = user_repo.get_user_by_email(db, email)
    if not user or not verify_password(data.password, user.password_hash):
        logger.warning("Failed login for %s", email)
        raise UnauthorizedError(INCORRECT_CREDENTIALS)

    if settings.account_activation_required and not user.activated:
        logger.warning("Login for inactive user %s", user.id)
        raise UnauthorizedError(NOT_ACTIVATED)

    return _issue(tokens, user)


async def forgot_password(db: Session, email: str, now: datetime | None = None) -> None:
    """
    Start a password reset: store a reset token and email it.

    Raises:
        DomainValidationError: If the email is blank or not registered.
    """
    user = await run_in_threadpool(
        _store_reset_token, db, email, now or datetime.now(timezone.utc)
    )
    logger.info("Password reset requested for user %s", user.id)
    try:
        await send_password_reset_email(user.email, user.reset_token)
    except (ValueError, aiosmtplib.SMTPException) as e:
        logger.error("Failed to send password reset email: %s", e)


def _store_reset_token(db: Session, email: str, sent_at: datetime) -> UserModel:
    email = normalize_email(email)
    if not email:
        raise DomainValidationError.single("email", "Email cannot be blank.")

    user = user_repo.get_user_by_email(db, email)
    if not user:
        raise DomainValidationError.single("email", EMAIL_NOT_FOUND)

    return user_repo.set_password_reset_token(db, user.id, generate_url_safe_token(), sent_at)


def reset_password(
    db: Session,
    data: PasswordReset,
    tokens: TokenService,
    now: datetime | None = None,
) -> AuthResult:
    """
    Set a new password using the emailed reset token.

    Raises:
        DomainValidationError: If email/token do not match a pending reset, the
            reset window has passed, or the new password is invalid.
    """
    email = normalize_email(data.email)
    token = data.token.strip()
    if not email or not token:
        raise DomainValidationError.single("token", INVALID_RESET)

    collector = ValidationCollector()
    check_password(collector, data.password, data.password_confirmation)

    user = user_repo.get_user_by_email_and_reset_token(db, email, token)
    window = PasswordResetWindow(timedelta(minutes=settings.password_reset_expire_minutes))
    if not user:
        collector.add("token", INVALID_RESET)
    elif window.is_expired(sent_at=user.reset_sent_at, now=now or datetime.now(timezone.utc)):
        collector.add("token", RESET_EXPIRED)
    collector.raise_if_errors()

    user = user_repo.update_user_password(db, user.id, get_password_hash(data.password))
    logger.info("Password reset completed for user %s", user.id)
    return _issue(tokens, user)

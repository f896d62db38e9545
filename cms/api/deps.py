import logging
from typing import Callable, NamedTuple

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from cms.core.security import TokenService, get_token_service
from cms.db import SessionLocal
from cms.db.models.user import User
from cms.errors import ForbiddenError, InvalidTokenError, UnauthorizedError
from cms.repositories.user import get_user_by_id

logger = logging.getLogger(__name__)

COOKIE_NAME = "jwt"

bearer_scheme = HTTPBearer(auto_error=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    """Token from an ``Authorization: Bearer`` header."""
    return credentials.credentials if credentials else None


def get_cookie_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    """Token from the session cookie, falling back to a bearer header."""
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    return credentials.credentials if credentials else None


def _load_user(db: Session, tokens: TokenService, token: str | None) -> User:
    if not token:
        raise UnauthorizedError("Could not validate credentials")
    try:
        identity = tokens.verify(token)
    except InvalidTokenError as e:
        logger.warning("Rejected token: %s", e)
        raise UnauthorizedError("Could not validate credentials") from e

    # Claims are only trusted as far as the live record agrees with them
    user = get_user_by_id(db, identity.id)
    if user is None:
        logger.warning("Token for missing user %s", identity.id)
        raise UnauthorizedError("Could not validate credentials")
    return user


class AuthGate(NamedTuple):
    """The auth dependencies for one way of presenting a token."""

    require_authenticated: Callable[..., User]
    require_admin: Callable[..., User]
    require_owner: Callable[..., User]
    optional_user: Callable[..., User | None]


def build_auth_gate(token_dependency: Callable[..., str | None]) -> AuthGate:
    """
    Create auth dependencies reading the token through ``token_dependency``.

    Every check re-reads the user from the database, so a deleted account or a
    changed role takes effect immediately even though the token is still valid.

    Example:
        Depends(api_auth.require_admin)
    """

    def require_authenticated(
        token: str | None = Depends(token_dependency),
        db: Session = Depends(get_db),
        tokens: TokenService = Depends(get_token_service),
    ) -> User:
        return _load_user(db, tokens, token)

    def require_admin(current_user: User = Depends(require_authenticated)) -> User:
        if not current_user.is_admin:
            logger.warning("User %s denied admin access", current_user.id)
            raise UnauthorizedError("Not enough permissions")
        return current_user

    def require_owner(
        user_id: int,
        current_user: User = Depends(require_authenticated),
    ) -> User:
        if current_user.id != user_id:
            logger.warning("User %s denied access to user %s", current_user.id, user_id)
            raise ForbiddenError("You can only access your own account")
        return current_user

    def optional_user(
        token: str | None = Depends(token_dependency),
        db: Session = Depends(get_db),
        tokens: TokenService = Depends(get_token_service),
    ) -> User | None:
        if not token:
            return None
        try:
            return _load_user(db, tokens, token)
        except UnauthorizedError:
            return None

    return AuthGate(require_authenticated, require_admin, require_owner, optional_user)


api_auth = build_auth_gate(get_bearer_token)
page_auth = build_auth_gate(get_cookie_token)

require_authenticated = api_auth.require_authenticated
require_admin = api_auth.require_admin
require_owner = api_auth.require_owner
get_optional_user = api_auth.optional_user

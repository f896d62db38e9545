import secrets
import string
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import jwt
from passlib.context import CryptContext

from cms.core.config import settings
from cms.errors import InvalidTokenError
from cms.schemas.user import Identity

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

URL_SAFE_ALPHABET = string.ascii_letters + string.digits + "-._~"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def generate_url_safe_token(length: int = 10) -> str:
    """Random token for activation and reset links."""
    return "".join(secrets.choice(URL_SAFE_ALPHABET) for _ in range(length))


class TokenService:
    """Issues and verifies signed, time-limited identity tokens.

    Tokens carry exactly the identity claims (``sub``, ``username``, ``role``)
    plus ``exp``. Verification trusts the embedded claims and never touches
    the database; callers that need live data re-read the user themselves.
    """

    def __init__(self, secret_key: str, algorithm: str, expires_delta: timedelta):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = expires_delta

    @property
    def max_age_seconds(self) -> int:
        return int(self.expires_delta.total_seconds())

    def issue(self, identity: Identity) -> str:
        expire = datetime.now(timezone.utc) + self.expires_delta
        payload = {
            "sub": str(identity.id),
            "username": identity.username,
            "role": identity.role.value,
            "exp": expire,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> Identity:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e

        try:
            return Identity(
                id=int(payload["sub"]),
                username=payload["username"],
                role=payload["role"],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError("Token claims do not describe an identity") from e


@lru_cache
def get_token_service() -> TokenService:
    """Process-wide token service built from configuration."""
    return TokenService(
        secret_key=settings.secret_key,
        algorithm=settings.algorithm,
        expires_delta=timedelta(days=settings.access_token_expire_days),
    )

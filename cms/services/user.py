import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import cms.repositories.user as user_repo
from cms.core.security import get_password_hash
from cms.db.models.user import User as UserModel
from cms.errors import DomainValidationError, NotFoundError
from cms.schemas.user import UserUpdate
from cms.services.auth import EMAIL_IN_USE
from cms.services.validation import (
    ValidationCollector,
    check_email,
    check_password,
    check_username,
)

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> UserModel:
    """
    Get a user by ID.

    Raises:
        NotFoundError: If user doesn't exist
    """
    user = user_repo.get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def get_all_users(
    db: Session, page: int = 1, page_size: int = 100
) -> tuple[list[UserModel], int]:
    """
    Get all users with pagination.

    Admin-only; authorization is handled at the controller level.
    """
    return user_repo.get_all_users_paginated(db, page=page, page_size=page_size)


def update_user(db: Session, user_id: int, user_data: UserUpdate) -> UserModel:
    """
    Update a user's profile.

    - Only username, email and password are writable
    - Email must stay unique; keeping one's own email is fine
    - A blank password leaves the current one unchanged

    Raises:
        NotFoundError: If user doesn't exist
        DomainValidationError: With every failing field rule
    """
    user = get_user(db, user_id)

    collector = ValidationCollector()
    username = check_username(collector, user_data.username)
    email = check_email(collector, user_data.email)
    if not collector.has_errors_for("email") and email != user.email:
        existing_user = user_repo.get_user_by_email(db, email)
        if existing_user and existing_user.id != user_id:
            collector.add("email", EMAIL_IN_USE)
    if user_data.password:
        check_password(collector, user_data.password, user_data.password_confirmation)
    collector.raise_if_errors()

    password_hash = get_password_hash(user_data.password) if user_data.password else None
    try:
        return user_repo.update_user(
            db,
            user_id=user_id,
            username=username,
            email=email,
            password_hash=password_hash,
        )
    except IntegrityError:
        db.rollback()
        raise DomainValidationError.single("email", EMAIL_IN_USE)


def delete_user(db: Session, user_id: int) -> None:
    """
    Delete a user account. Nothing else references users, so nothing cascades.

    Raises:
        NotFoundError: If user doesn't exist
    """
    get_user(db, user_id)
    user_repo.delete_user(db, user_id)
    logger.info("User %s deleted", user_id)

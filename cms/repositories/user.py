from datetime import datetime

from sqlalchemy.orm import Session

from cms.db.models.user import User as UserModel, UserRole
from cms.errors import NotFoundError


def get_user_by_email(db: Session, email: str) -> UserModel | None:
    """Get a user by email."""
    return db.query(UserModel).filter(UserModel.email == email).first()


def get_user_by_id(db: Session, user_id: int) -> UserModel | None:
    """Get a user by ID."""
    return db.query(UserModel).filter(UserModel.id == user_id).first()


def get_user_by_email_and_reset_token(db: Session, email: str, token: str) -> UserModel | None:
    """Get the user an emailed reset token was issued to."""
    return (
        db.query(UserModel)
        .filter(UserModel.email == email, UserModel.reset_token == token)
        .first()
    )


def create_user(
    db: Session,
    username: str,
    email: str,
    password_hash: str,
    role: UserRole = UserRole.STANDARD,
    activated: bool = False,
    activation_token: str | None = None,
) -> UserModel:
    """Create a new user in the database. Pure data access - no business logic."""
    db_user = UserModel(
        username=username,
        email=email,
        password_hash=password_hash,
        role=role.value,
        activated=activated,
        activation_token=activation_token,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def activate_user(db: Session, user_id: int) -> UserModel:
    """Mark a user as activated and consume the activation token."""
    user = get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError("User not found")

    user.activated = True
    user.activation_token = None
    db.commit()
    db.refresh(user)
    return user


def update_user_password(db: Session, user_id: int, password_hash: str) -> UserModel:
    """Update a user's password and consume any pending reset token."""
    user = get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError("User not found")

    user.password_hash = password_hash
    user.reset_token = None
    user.reset_sent_at = None
    db.commit()
    db.refresh(user)
    return user


def set_password_reset_token(
    db: Session, user_id: int, token: str, sent_at: datetime
) -> UserModel:
    """Set password reset token for a user."""
    user = get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError("User not found")

    user.reset_token = token
    user.reset_sent_at = sent_at
    db.commit()
    db.refresh(user)
    return user


def update_user(
    db: Session,
    user_id: int,
    username: str | None = None,
    email: str | None = None,
    password_hash: str | None = None,
) -> UserModel:
    """Update user fields. Only provided fields will be updated."""
    user = get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError("User not found")

    if username is not None:
        user.username = username
    if email is not None:
        user.email = email
    if password_hash is not None:
        user.password_hash = password_hash

    db.commit()
    db.refresh(user)
    return user


def get_all_users_paginated(
    db: Session, page: int = 1, page_size: int = 100
) -> tuple[list[UserModel], int]:
    """
    Get all users with pagination, sorted by username for stable pagination.

    Args:
        page: Page number (1-indexed)
        page_size: Number of items per page

    Returns:
        Tuple of (list of users, total count)
    """
    query = db.query(UserModel)
    total = query.count()
    skip = (page - 1) * page_size
    users = (
        query.order_by(UserModel.username, UserModel.id)
        .offset(skip)
        .limit(page_size)
        .all()
    )
    return users, total


def delete_user(db: Session, user_id: int) -> None:
    """Delete a user by ID."""
    user = get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError("User not found")

    db.delete(user)
    db.commit()

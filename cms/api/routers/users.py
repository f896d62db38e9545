from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from cms.api.deps import get_db, require_admin, require_owner
from cms.db.models.user import User as UserModel
from cms.pages.common import clear_auth_cookie
from cms.schemas.pagination import PaginatedResponse
from cms.schemas.user import User, UserUpdate
from cms.services import user as user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=PaginatedResponse[User])
def get_all_users_paginated(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(100, ge=1, le=1000, description="Number of items per page"),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Get all users with pagination. Only admin users can access this endpoint."""
    users, total = user_service.get_all_users(db, page=page, page_size=page_size)
    return PaginatedResponse(
        items=[User.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{user_id}", response_model=User)
def get_user_by_id(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Get a user by ID. Only admin users can access this endpoint."""
    return User.model_validate(user_service.get_user(db, user_id))


@router.put("/{user_id}", response_model=User)
def update_user_by_id(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_owner),
):
    """
    Update your own account.

    Only username, email and password can be changed; role and activation
    state are not writable here.
    """
    user = user_service.update_user(db, user_id, user_data)
    return User.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user_by_id(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_owner),
):
    """Delete your own account and clear the token cookie."""
    user_service.delete_user(db, user_id)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_auth_cookie(response)
    return response

from fastapi import APIRouter, Depends, Form, Request
from sqlalchemy.orm import Session

from cms.api.deps import get_db, page_auth
from cms.db.models.user import User
from cms.errors import DomainValidationError
from cms.pages.common import clear_auth_cookie, flash, redirect, render, render_form_errors
from cms.schemas.user import UserUpdate
from cms.services import user as user_service

router = APIRouter(prefix="/users", include_in_schema=False)


@router.get("")
def list_users(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(page_auth.require_admin),
):
    users, _total = user_service.get_all_users(db, page_size=50)
    return render(request, "users/list.html", {"title": "Users", "users": users})


@router.get("/{user_id}")
def detail(
    request: Request,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(page_auth.require_owner),
):
    user = user_service.get_user(db, user_id)
    return render(request, "users/detail.html", {"title": "User", "user": user})


@router.get("/{user_id}/update")
def update_form(
    request: Request,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(page_auth.require_owner),
):
    user = user_service.get_user(db, user_id)
    form = {"username": user.username, "email": user.email}
    return render(request, "users/update.html", {"title": "Update Account", "user": user, "form": form})


@router.post("/{user_id}/update")
def update(
    request: Request,
    user_id: int,
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    password_confirmation: str = Form(""),
    db: Session = Depends(get_db),
    current_user: User = Depends(page_auth.require_owner),
):
    data = UserUpdate(
        username=username,
        email=email,
        password=password or None,
        password_confirmation=password_confirmation,
    )
    try:
        user = user_service.update_user(db, user_id, data)
    except DomainValidationError as e:
        return render_form_errors(
            request,
            "users/update.html",
            e,
            data.model_dump(),
            {"title": "Update Account", "user": current_user},
        )
    flash(request, "Account updated.", "success")
    return redirect(user.url)


@router.get("/{user_id}/delete")
def delete_form(
    request: Request,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(page_auth.require_owner),
):
    user = user_service.get_user(db, user_id)
    return render(request, "users/delete.html", {"title": "Delete Account", "user": user})


@router.post("/{user_id}/delete")
def destroy(
    request: Request,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(page_auth.require_owner),
):
    user_service.delete_user(db, user_id)
    flash(request, "Account Deleted.", "info")
    response = redirect("/")
    clear_auth_cookie(response)
    return response

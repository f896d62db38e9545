from fastapi import APIRouter, Depends, Form, Request
from sqlalchemy.orm import Session

from cms.api.deps import get_db, page_auth
from cms.db.models.user import User
from cms.errors import DomainValidationError
from cms.pages.common import flash, redirect, render, render_form_errors
from cms.schemas.article import ArticleCreate, ArticleUpdate
from cms.services import article as article_service

router = APIRouter(prefix="/articles", include_in_schema=False)


@router.get("")
def list_articles(
    request: Request,
    published: bool | None = None,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(page_auth.optional_user),
):
    articles, _total = article_service.list_articles(db, viewer, published=published)
    return render(request, "articles/list.html", {"title": "Articles", "articles": articles})


@router.get("/create")
def create_form(request: Request, current_user: User = Depends(page_auth.require_authenticated)):
    return render(
        request,
        "articles/form.html",
        {"title": "Create Article", "form": {}, "action": "/articles/create"},
    )


@router.post("/create")
def create(
    request: Request,
    title: str = Form(""),
    content: str = Form(""),
    published: bool = Form(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(page_auth.require_authenticated),
):
    data = ArticleCreate(title=title, content=content, published=published)
    try:
        article = article_service.create_article(db, data)
    except DomainValidationError as e:
        return render_form_errors(
            request,
            "articles/form.html",
            e,
            data.model_dump(),
            {"title": "Create Article", "action": "/articles/create"},
        )
    flash(request, "Article has been created.", "success")
    return redirect(article.url)


@router.get("/{article_id}")
def detail(
    request: Request,
    article_id: int,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(page_auth.optional_user),
):
    article = article_service.get_article(db, article_id, viewer)
    return render(request, "articles/detail.html", {"title": article.title, "article": article})


@router.get("/{article_id}/update")
def update_form(
    request: Request,
    article_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(page_auth.require_authenticated),
):
    article = article_service.get_article(db, article_id, current_user)
    form = {"title": article.title, "content": article.content, "published": article.published}
    return render(
        request,
        "articles/form.html",
        {"title": "Update Article", "form": form, "action": f"{article.url}/update"},
    )


@router.post("/{article_id}/update")
def update(
    request: Request,
    article_id: int,
    title: str = Form(""),
    content: str = Form(""),
    published: bool = Form(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(page_auth.require_authenticated),
):
    data = ArticleUpdate(title=title, content=content, published=published)
    try:
        article = article_service.update_article(db, article_id, data)
    except DomainValidationError as e:
        return render_form_errors(
            request,
            "articles/form.html",
            e,
            data.model_dump(),
            {"title": "Update Article", "action": f"/articles/{article_id}/update"},
        )
    flash(request, "Article has been updated.", "success")
    return redirect(article.url)


@router.get("/{article_id}/delete")
def delete_form(
    request: Request,
    article_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(page_auth.require_authenticated),
):
    article = article_service.get_article(db, article_id, current_user)
    return render(request, "articles/delete.html", {"title": "Delete Article", "article": article})


@router.post("/{article_id}/delete")
def destroy(
    request: Request,
    article_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(page_auth.require_authenticated),
):
    article_service.delete_article(db, article_id)
    flash(request, "Article has been deleted.", "info")
    return redirect("/articles")

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from cms.api.deps import get_db, get_optional_user, require_authenticated
from cms.db.models.user import User
from cms.schemas.article import Article, ArticleCreate, ArticleSummary, ArticleUpdate
from cms.schemas.pagination import PaginatedResponse
from cms.services import article as article_service

router = APIRouter(prefix="/articles", tags=["articles"])


@router.get("", response_model=PaginatedResponse[ArticleSummary])
def get_all_articles(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(50, ge=1, le=100, description="Number of items per page"),
    published: bool | None = Query(
        None, description="Filter on the published flag (signed-in users only)"
    ),
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    """
    List articles sorted by title.

    - Anonymous readers: published articles only
    - Signed-in users: all articles, optionally filtered by ``published``
    """
    articles, total = article_service.list_articles(
        db, viewer, page=page, page_size=page_size, published=published
    )
    return PaginatedResponse(
        items=[ArticleSummary.model_validate(a) for a in articles],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=Article, status_code=status.HTTP_201_CREATED)
def create_new_article(
    article_data: ArticleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_authenticated),
):
    """Create an article. Any signed-in user may create articles."""
    article = article_service.create_article(db, article_data)
    return Article.model_validate(article)


@router.get("/{article_id}", response_model=Article)
def get_article_by_id(
    article_id: int,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    """Get an article. Unpublished articles are only visible to signed-in users."""
    article = article_service.get_article(db, article_id, viewer)
    return Article.model_validate(article)


@router.put("/{article_id}", response_model=Article)
def update_article_by_id(
    article_id: int,
    article_data: ArticleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_authenticated),
):
    """Update an article's title, content and published flag."""
    article = article_service.update_article(db, article_id, article_data)
    return Article.model_validate(article)


@router.delete("/{article_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_article_by_id(
    article_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_authenticated),
):
    """Delete an article."""
    article_service.delete_article(db, article_id)

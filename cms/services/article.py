from sqlalchemy.orm import Session

import cms.repositories.article as article_repo
from cms.db.models.article import Article as ArticleModel
from cms.db.models.user import User
from cms.errors import NotFoundError
from cms.schemas.article import ArticleCreate, ArticleUpdate
from cms.services.validation import ValidationCollector, check_content, check_title


def list_articles(
    db: Session,
    viewer: User | None,
    page: int = 1,
    page_size: int = 50,
    published: bool | None = None,
) -> tuple[list[ArticleModel], int]:
    """
    List articles visible to the viewer, sorted by title.

    - Anonymous readers only see published articles
    - Signed-in users see everything and may filter on the published flag
    """
    if viewer is None:
        published = True
    return article_repo.get_articles_paginated(
        db, page=page, page_size=page_size, published=published
    )


def get_article(db: Session, article_id: int, viewer: User | None) -> ArticleModel:
    """
    Get an article visible to the viewer.

    Raises:
        NotFoundError: If the article doesn't exist, or is unpublished and the
            viewer is anonymous
    """
    article = article_repo.get_article_by_id(db, article_id)
    if not article or (viewer is None and not article.published):
        raise NotFoundError("Article not found")
    return article


def _validated_fields(data: ArticleCreate | ArticleUpdate) -> tuple[str, str]:
    collector = ValidationCollector()
    title = check_title(collector, data.title)
    content = check_content(collector, data.content)
    collector.raise_if_errors()
    return title, content


def create_article(db: Session, article_data: ArticleCreate) -> ArticleModel:
    """
    Create an article.

    Raises:
        DomainValidationError: With every failing field rule
    """
    title, content = _validated_fields(article_data)
    return article_repo.create_article(
        db, title=title, content=content, published=article_data.published
    )


def update_article(db: Session, article_id: int, article_data: ArticleUpdate) -> ArticleModel:
    """
    Update an article's title, content and published flag.

    Raises:
        NotFoundError: If article doesn't exist
        DomainValidationError: With every failing field rule
    """
    if not article_repo.get_article_by_id(db, article_id):
        raise NotFoundError("Article not found")

    title, content = _validated_fields(article_data)
    return article_repo.update_article(
        db,
        article_id=article_id,
        title=title,
        content=content,
        published=article_data.published,
    )


def delete_article(db: Session, article_id: int) -> None:
    """
    Delete an article.

    Raises:
        NotFoundError: If article doesn't exist
    """
    if not article_repo.get_article_by_id(db, article_id):
        raise NotFoundError("Article not found")
    article_repo.delete_article(db, article_id)

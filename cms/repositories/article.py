from sqlalchemy.orm import Session

from cms.db.models.article import Article as ArticleModel
from cms.errors import NotFoundError


def get_article_by_id(db: Session, article_id: int) -> ArticleModel | None:
    """Get an article by ID."""
    return db.query(ArticleModel).filter(ArticleModel.id == article_id).first()


def get_articles_paginated(
    db: Session,
    page: int = 1,
    page_size: int = 50,
    published: bool | None = None,
) -> tuple[list[ArticleModel], int]:
    """
    Get articles sorted by title.

    Args:
        published: When set, only articles with this published flag are returned.

    Returns:
        Tuple of (list of articles, total count)
    """
    query = db.query(ArticleModel)
    if published is not None:
        query = query.filter(ArticleModel.published.is_(published))
    total = query.count()
    skip = (page - 1) * page_size
    articles = (
        query.order_by(ArticleModel.title, ArticleModel.id)
        .offset(skip)
        .limit(page_size)
        .all()
    )
    return articles, total


def create_article(
    db: Session, title: str, content: str, published: bool = False
) -> ArticleModel:
    """Create a new article in the database. Pure data access - no business logic."""
    db_article = ArticleModel(title=title, content=content, published=published)
    db.add(db_article)
    db.commit()
    db.refresh(db_article)
    return db_article


def update_article(
    db: Session, article_id: int, title: str, content: str, published: bool
) -> ArticleModel:
    """Replace the writable fields of an article."""
    article = get_article_by_id(db, article_id)
    if not article:
        raise NotFoundError("Article not found")

    article.title = title
    article.content = content
    article.published = published
    db.commit()
    db.refresh(article)
    return article


def delete_article(db: Session, article_id: int) -> None:
    """Delete an article by ID."""
    article = get_article_by_id(db, article_id)
    if not article:
        raise NotFoundError("Article not found")

    db.delete(article)
    db.commit()

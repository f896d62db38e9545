from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Article(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: str
    published: bool
    created_at: datetime
    updated_at: datetime


class ArticleSummary(BaseModel):
    """Listing view of an article: no body."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    published: bool
    created_at: datetime
    updated_at: datetime


class ArticleCreate(BaseModel):
    title: str = ""
    content: str = ""
    published: bool = False


class ArticleUpdate(BaseModel):
    title: str = ""
    content: str = ""
    published: bool = False

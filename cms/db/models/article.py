from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from cms.db.base import Base
from cms.db.models.user import utcnow


class Article(Base):
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False, index=True)
    content = Column(Text, nullable=False)
    published = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def url(self) -> str:
        return f"/articles/{self.id}"

from cms.db.models.user import User, UserRole
from cms.db.models.article import Article

__all__ = ["User", "UserRole", "Article"]

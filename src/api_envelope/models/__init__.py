"""ORM 模型导出集合。"""

from api_envelope.models.article import Article, ArticleStatus
from api_envelope.models.base import Base, Entity
from api_envelope.models.user import User

__all__ = ["Article", "ArticleStatus", "Base", "Entity", "User"]

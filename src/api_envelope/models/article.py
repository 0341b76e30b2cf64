"""文章模型。"""

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api_envelope.models.base import Entity

if TYPE_CHECKING:
    from api_envelope.models.user import User


class ArticleStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class Article(Entity):
    """用户发布的文章。"""

    __tablename__ = "articles"

    title: Mapped[str] = mapped_column(String(200), nullable=False, comment="标题。")
    body: Mapped[str] = mapped_column(Text, nullable=False, comment="正文。")
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ArticleStatus.DRAFT.value, comment="状态：draft/published。"
    )
    author_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True, comment="作者 ID。")

    author: Mapped["User"] = relationship(back_populates="articles")

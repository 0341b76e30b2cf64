"""用户模型。"""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api_envelope.models.base import Entity
from api_envelope.resources.base import FieldSpec

if TYPE_CHECKING:
    from api_envelope.models.article import Article


class User(Entity):
    """本地账号。"""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, comment="登录名。")
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True, comment="邮箱。")
    display_name: Mapped[str] = mapped_column(String(128), nullable=False, comment="展示名。")
    # 口令哈希，永不对外输出。
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False, comment="口令哈希。")

    articles: Mapped[list["Article"]] = relationship(back_populates="author", order_by="Article.created_at")

    def fields(self) -> FieldSpec:
        return [name for name in super().fields() if name != "password_hash"]

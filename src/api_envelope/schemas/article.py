"""文章相关结构。"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from api_envelope.schemas.auth import UserData
from api_envelope.schemas.common import BaseSchema


class ArticleInput(BaseModel):
    """文章创建与修改的输入规则。"""

    title: str = Field(min_length=3, max_length=200, description="标题。")
    body: str = Field(min_length=1, description="正文。")
    status: Literal["draft", "published"] = Field(default="draft", description="状态。")


class ArticleData(BaseSchema):
    """文章输出结构。"""

    id: UUID
    title: str
    body: str
    status: str
    author_id: UUID
    created_at: datetime
    updated_at: datetime
    author: UserData | None = Field(default=None, description="作者，需 expand=author 或已预加载。")


class ArticleSummary(BaseSchema):
    """文章摘要。"""

    id: UUID
    title: str

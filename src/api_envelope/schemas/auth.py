"""认证相关结构。"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from api_envelope.schemas.common import BaseSchema


class LoginInput(BaseModel):
    """登录输入规则。"""

    username: str = Field(min_length=3, max_length=64, description="登录名。")
    password: str = Field(min_length=6, max_length=128, description="口令。")


class RegisterInput(BaseModel):
    """注册输入规则。"""

    username: str = Field(min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_]+$", description="登录名。")
    email: str = Field(max_length=256, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", description="邮箱。")
    password: str = Field(min_length=6, max_length=128, description="口令。")
    display_name: str | None = Field(default=None, max_length=128, description="展示名，缺省使用登录名。")


class UserData(BaseSchema):
    """用户输出结构。"""

    id: UUID
    username: str
    email: str
    display_name: str
    created_at: datetime
    updated_at: datetime


class TokenData(BaseSchema):
    """访问令牌输出结构。"""

    access_token: str = Field(description="访问令牌。")
    token_type: str = Field(default="Bearer", description="令牌类型。")
    expires_in: int = Field(description="有效秒数。")
    user: UserData

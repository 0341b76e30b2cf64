"""全局通用结构。

用于在线接口文档展示统一包裹结构 ``{status, error, data}``。
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """基础结构，开启对象映射能力。"""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class FieldErrorItem(BaseSchema):
    """字段校验错误。"""

    field: str = Field(description="出错字段名。")
    message: str = Field(description="首条错误信息。")


class PageMeta(BaseSchema):
    """分页元信息。"""

    total_count: int = Field(alias="totalCount", ge=0, description="总记录数。")
    page_count: int = Field(alias="pageCount", ge=0, description="总页数。")
    current_page: int = Field(alias="currentPage", ge=1, description="当前页码（从 1 开始）。")
    per_page: int = Field(alias="perPage", ge=1, description="每页条数。")


T = TypeVar("T")


class Envelope(BaseSchema, Generic[T]):
    """统一成功响应。"""

    status: int = Field(default=0, description="业务状态码，0 表示成功。")
    error: str = Field(default="", description="错误信息，成功时为空字符串。")
    data: T | None = Field(default=None, description="业务返回数据主体。")


class ErrorEnvelope(BaseSchema):
    """统一失败响应。"""

    status: int = Field(description="非零业务状态码。")
    error: str = Field(description="人类可读错误信息。")
    data: list[FieldErrorItem] | dict[str, Any] | None = Field(default=None, description="字段错误列表或调试信息。")


class PagedItems(BaseSchema, Generic[T]):
    """集合序列化结果。"""

    items: list[T] = Field(default_factory=list, description="当前页数据。")
    meta: PageMeta = Field(alias="_meta", description="分页元信息。")


class PagedList(BaseSchema, Generic[T]):
    """分页包裹结果。"""

    entries: list[T] = Field(default_factory=list, alias="list", description="当前页数据。")
    meta: PageMeta = Field(alias="_meta", description="分页元信息。")


class HealthStatusData(BaseSchema):
    """健康检查结果。"""

    status: str = Field(description="服务状态。")

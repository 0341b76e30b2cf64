"""统一响应包裹结构工具。

所有接口返回同一形状 ``{status, error, data}``：
- 成功时 ``status == 0`` 且 ``error == ""``；
- 失败时 ``status`` 非零且 ``error`` 为非空说明。
"""

from typing import Any, Protocol

SUCCESS_STATUS = 0
VALIDATION_FAILED_STATUS = 422
VALIDATION_FAILED_MESSAGE = "Data Validation Failed."
DEFAULT_ERROR_MESSAGE = "An internal server error occurred."


class PageInfoSource(Protocol):
    """可提供分页元信息的对象。"""

    total_count: int

    @property
    def page_count(self) -> int: ...

    @property
    def page(self) -> int: ...

    @property
    def page_size(self) -> int: ...


def success(data: Any = None) -> dict[str, Any]:
    """构造成功包裹。"""
    return {"status": SUCCESS_STATUS, "error": "", "data": data}


def fail(status: int, error: str, data: Any = None) -> dict[str, Any]:
    """构造失败包裹。"""
    if status == SUCCESS_STATUS:
        raise ValueError("fail() requires a non-zero status")
    if not error:
        raise ValueError("fail() requires a non-empty error message")
    return {"status": status, "error": error, "data": data}


def page_meta(source: PageInfoSource) -> dict[str, int]:
    """构造分页元信息，当前页对外从 1 开始计数。"""
    return {
        "totalCount": source.total_count,
        "pageCount": source.page_count,
        "currentPage": source.page + 1,
        "perPage": source.page_size,
    }


def pagination(source: PageInfoSource, data: Any) -> dict[str, Any]:
    """构造分页成功包裹。"""
    return success({"list": data, "_meta": page_meta(source)})

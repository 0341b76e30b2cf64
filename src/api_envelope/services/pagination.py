"""分页状态计算。

页码在内部从 0 开始，对外（查询参数、元信息）从 1 开始。
显式设置的页码与分页大小不做校验；从查询参数读取时会被钳制到合法范围。
"""

from collections.abc import Mapping
from typing import Any

from starlette.requests import Request

from api_envelope.core.config import get_settings

_UNSET: Any = object()


class Pagination:
    """分页器：根据总数与请求参数计算当前页、偏移量与分页链接。"""

    page_param = "page"
    page_size_param = "per-page"

    def __init__(
        self,
        *,
        request: Request | None = None,
        total_count: int = 0,
        page: int | None = None,
        page_size: int | None = None,
        default_page_size: int | None = None,
        page_size_limit: tuple[int, int] | None = _UNSET,
        validate_page: bool = True,
        params: Mapping[str, str] | None = None,
    ) -> None:
        settings = get_settings()
        self.request = request
        if params is not None:
            self.params = dict(params)
        elif request is not None:
            self.params = dict(request.query_params)
        else:
            self.params = {}
        self.total_count = total_count
        self.default_page_size = default_page_size or settings.page_size_default
        self.page_size_limit = settings.page_size_limit if page_size_limit is _UNSET else page_size_limit
        self.validate_page = validate_page
        self._page: int | None = None
        self._page_size: int | None = None
        if page_size is not None:
            self.set_page_size(page_size)
        if page is not None:
            self.set_page(page)

    def _query_int(self, name: str, default: int) -> int:
        raw = self.params.get(name)
        if raw is None or str(raw).strip() == "":
            return default
        try:
            return int(raw)
        except (TypeError, ValueError):
            return default

    @property
    def page_size(self) -> int:
        if self._page_size is None:
            if not self.page_size_limit:
                self.set_page_size(self.default_page_size)
            else:
                self.set_page_size(self._query_int(self.page_size_param, self.default_page_size), validate=True)
        return self._page_size

    def set_page_size(self, value: int | None, validate: bool = False) -> None:
        if value is None:
            self._page_size = None
            return
        value = int(value)
        if validate and self.page_size_limit:
            low, high = self.page_size_limit
            value = min(max(value, low), high)
        self._page_size = value

    @property
    def page_count(self) -> int:
        page_size = self.page_size
        if page_size < 1:
            return 1 if self.total_count > 0 else 0
        total = max(0, self.total_count)
        return (total + page_size - 1) // page_size

    @property
    def page(self) -> int:
        """当前页（从 0 开始）。"""
        if self._page is None:
            self.set_page(self._query_int(self.page_param, 1) - 1, validate=True)
        return self._page

    def set_page(self, value: int | None, validate: bool = False) -> None:
        if value is None:
            self._page = None
            return
        value = int(value)
        if validate and self.validate_page:
            page_count = self.page_count
            if value >= page_count:
                value = page_count - 1
            if value < 0:
                value = 0
        self._page = value

    @property
    def offset(self) -> int:
        page_size = self.page_size
        return 0 if page_size < 1 else self.page * page_size

    @property
    def limit(self) -> int:
        """每页条数，-1 表示不限制。"""
        page_size = self.page_size
        return -1 if page_size < 1 else page_size

    def create_url(self, page: int, page_size: int | None = None, absolute: bool = False) -> str | None:
        """生成指定页的地址，未绑定请求时返回 None。"""
        if self.request is None:
            return None
        params = dict(self.params)
        params[self.page_param] = str(page + 1)
        page_size = self.page_size if page_size is None else page_size
        if page_size != self.default_page_size:
            params[self.page_size_param] = str(page_size)
        else:
            params.pop(self.page_size_param, None)

        url = self.request.url.replace_query_params(**params)
        if absolute:
            return str(url)
        return f"{url.path}?{url.query}" if url.query else url.path

    def links(self, absolute: bool = False) -> dict[str, str]:
        """返回 self/first/prev/next/last 链接。"""
        if self.request is None:
            return {}
        current = self.page
        page_count = self.page_count
        links = {"self": self.create_url(current, absolute=absolute)}
        if page_count > 0:
            links["first"] = self.create_url(0, absolute=absolute)
            if current > 0:
                links["prev"] = self.create_url(current - 1, absolute=absolute)
            if current < page_count - 1:
                links["next"] = self.create_url(current + 1, absolute=absolute)
            links["last"] = self.create_url(page_count - 1, absolute=absolute)
        return links

"""分页集合数据源。"""

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Literal

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session
from starlette.requests import Request

from api_envelope.services.pagination import Pagination

KeySpec = str | Callable[[Any], Any] | None


class DataProvider:
    """分页集合数据源基类。

    ``pagination`` 为 ``False`` 时关闭分页，``models()`` 返回全部数据。
    """

    def __init__(
        self,
        *,
        pagination: Pagination | Literal[False] | None = None,
        request: Request | None = None,
        key: KeySpec = None,
    ) -> None:
        self._pagination = pagination
        self._request = request
        self.key = key
        self._models: list[Any] | dict[Any, Any] | None = None
        self._total_count: int | None = None

    @property
    def pagination(self) -> Pagination | Literal[False]:
        if self._pagination is None:
            self._pagination = Pagination(request=self._request)
        return self._pagination

    def models(self) -> list[Any] | dict[Any, Any]:
        if self._models is None:
            self._models = self.prepare_models()
        return self._models

    def keys(self) -> list[Any]:
        models = self.models()
        if isinstance(models, Mapping):
            return list(models.keys())
        return list(range(len(models)))

    @property
    def count(self) -> int:
        """当前页条数。"""
        return len(self.models())

    @property
    def total_count(self) -> int:
        if self._total_count is None:
            self._total_count = self.prepare_total_count()
        return self._total_count

    def refresh(self) -> None:
        self._models = None
        self._total_count = None

    def prepare_models(self) -> list[Any] | dict[Any, Any]:
        raise NotImplementedError

    def prepare_total_count(self) -> int:
        raise NotImplementedError

    def _key_of(self, model: Any) -> Any:
        if callable(self.key):
            return self.key(model)
        if isinstance(model, Mapping):
            return model[self.key]
        return getattr(model, self.key)

    def _index_by_key(self, models: list[Any] | dict[Any, Any]) -> list[Any] | dict[Any, Any]:
        if self.key is None:
            return models
        values = models.values() if isinstance(models, Mapping) else models
        return {self._key_of(model): model for model in values}


class ArrayDataProvider(DataProvider):
    """内存集合数据源，映射输入在分页切片后保留原始键。"""

    def __init__(self, all_models: Sequence[Any] | Mapping[Any, Any], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.all_models = all_models

    def prepare_total_count(self) -> int:
        return len(self.all_models)

    def prepare_models(self) -> list[Any] | dict[Any, Any]:
        models: list[Any] | dict[Any, Any]
        if isinstance(self.all_models, Mapping):
            models = dict(self.all_models)
        else:
            models = list(self.all_models)

        pagination = self.pagination
        if pagination is not False:
            pagination.total_count = self.total_count
            if pagination.page_size > 0:
                start = pagination.offset
                stop = start + pagination.limit
                if isinstance(models, dict):
                    models = dict(list(models.items())[start:stop])
                else:
                    models = models[start:stop]
        return self._index_by_key(models)


class QueryDataProvider(DataProvider):
    """基于 SQLAlchemy 查询的数据源。"""

    def __init__(self, db: Session, query: Select, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.db = db
        self.query = query

    def prepare_total_count(self) -> int:
        count_query = select(func.count()).select_from(self.query.order_by(None).subquery())
        return int(self.db.scalar(count_query) or 0)

    def prepare_models(self) -> list[Any] | dict[Any, Any]:
        query = self.query
        pagination = self.pagination
        if pagination is not False:
            pagination.total_count = self.total_count
            if pagination.total_count == 0:
                return self._index_by_key([])
            query = query.offset(pagination.offset)
            if pagination.limit > 0:
                query = query.limit(pagination.limit)
        models = list(self.db.execute(query).scalars().all())
        return self._index_by_key(models)

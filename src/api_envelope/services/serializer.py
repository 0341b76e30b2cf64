"""资源序列化器。

将动作返回的包裹结构中的 ``data`` 转换为可直接编码的结构。
待序列化的值在入口处按能力归类一次（``ValueKind``），再分派处理：

1. 带校验错误的资源 -> 字段错误列表，响应状态置为 422；
2. 可转数组的资源 -> 按请求字段与扩展字段输出（HEAD 请求输出 None，集合中的每一项同样如此）；
3. 分页集合 -> 模型列表 + 分页元信息，并写入分页响应头；
4. 普通对象 -> 公开字段映射后继续递归；
5. 映射 / 序列 -> 逐项递归；
6. 标量 -> 原样返回。
"""

from collections.abc import Mapping
import dataclasses
from enum import Enum
import re
from typing import Any

from pydantic import BaseModel
from starlette.requests import Request
from starlette.responses import Response

from api_envelope.resources.base import Arrayable, Resource
from api_envelope.services.data_providers import DataProvider
from api_envelope.services.pagination import Pagination
from api_envelope.utils.response import VALIDATION_FAILED_STATUS, page_meta

_LIST_SPLIT = re.compile(r"\s*,\s*")


class ValueKind(str, Enum):
    """序列化分派类别。"""

    VALIDATED_RESOURCE = "validated_resource"
    ARRAYABLE = "arrayable"
    PAGED_COLLECTION = "paged_collection"
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    GENERIC_OBJECT = "generic_object"
    SCALAR = "scalar"


def _is_generic_object(value: Any) -> bool:
    if isinstance(value, BaseModel):
        return True
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return True
    if value is None or isinstance(value, (str, bytes, int, float, bool, Enum, type)):
        return False
    return hasattr(value, "__dict__") and not callable(value)


def classify(value: Any) -> ValueKind:
    """按能力判定值的类别，顺序即优先级。"""
    if isinstance(value, Resource) and value.has_errors():
        return ValueKind.VALIDATED_RESOURCE
    if isinstance(value, Arrayable):
        return ValueKind.ARRAYABLE
    if isinstance(value, DataProvider):
        return ValueKind.PAGED_COLLECTION
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    if _is_generic_object(value):
        return ValueKind.GENERIC_OBJECT
    return ValueKind.SCALAR


def object_to_mapping(value: Any) -> dict[str, Any]:
    """普通对象转公开字段映射。"""
    if isinstance(value, BaseModel):
        return value.model_dump()
    if dataclasses.is_dataclass(value):
        return {item.name: getattr(value, item.name) for item in dataclasses.fields(value)}
    return {name: item for name, item in vars(value).items() if not name.startswith("_")}


class Serializer:
    """按请求上下文序列化动作结果。"""

    def __init__(
        self,
        request: Request,
        response: Response | None = None,
        *,
        collection_envelope: str | None = None,
        meta_envelope: str = "_meta",
        preserve_keys: bool = False,
        fields_param: str = "fields",
        expand_param: str = "expand",
    ) -> None:
        self.request = request
        self.response = response
        self.collection_envelope = collection_envelope
        self.meta_envelope = meta_envelope
        self.preserve_keys = preserve_keys
        self.fields_param = fields_param
        self.expand_param = expand_param

    def serialize(self, content: Any) -> Any:
        """仅当包裹结构中 data 存在且非空时转换 data。"""
        if not isinstance(content, Mapping) or not content.get("data"):
            return content
        result = dict(content)
        result["data"] = self.serialize_value(content["data"])
        return result

    def serialize_value(self, data: Any) -> Any:
        kind = classify(data)
        if kind is ValueKind.VALIDATED_RESOURCE:
            return self.serialize_model_errors(data)
        if kind is ValueKind.ARRAYABLE:
            return self.serialize_model(data)
        if kind is ValueKind.PAGED_COLLECTION:
            return self.serialize_data_provider(data)
        if kind is ValueKind.GENERIC_OBJECT:
            data = object_to_mapping(data)
            kind = ValueKind.MAPPING
        if kind is ValueKind.MAPPING:
            return {key: self.serialize_value(item) for key, item in data.items()}
        if kind is ValueKind.SEQUENCE:
            return [self.serialize_value(item) for item in data]
        return data

    @property
    def _is_head(self) -> bool:
        return self.request.method.upper() == "HEAD"

    def get_requested_fields(self) -> tuple[list[str], list[str]]:
        """解析 fields / expand 查询参数。"""
        params = self.request.query_params
        fields = params.get(self.fields_param) or ""
        expand = params.get(self.expand_param) or ""
        return (
            [item for item in _LIST_SPLIT.split(fields.strip()) if item],
            [item for item in _LIST_SPLIT.split(expand.strip()) if item],
        )

    def serialize_model(self, model: Arrayable) -> dict[str, Any] | None:
        if self._is_head:
            return None
        fields, expand = self.get_requested_fields()
        if isinstance(model, Resource):
            related = [name for name in model.related_records() if name not in expand]
            expand = related + expand
        return model.to_array(fields, expand, True)

    def serialize_model_errors(self, model: Resource) -> list[dict[str, str]]:
        if self.response is not None:
            self.response.status_code = VALIDATION_FAILED_STATUS
        return [{"field": name, "message": message} for name, message in model.first_errors().items()]

    def serialize_models(self, models: list[Any] | dict[Any, Any]) -> list[Any] | dict[Any, Any]:
        if isinstance(models, dict):
            return {key: self._serialize_collection_item(model) for key, model in models.items()}
        return [self._serialize_collection_item(model) for model in models]

    def _serialize_collection_item(self, model: Any) -> Any:
        if isinstance(model, Arrayable):
            return self.serialize_model(model)
        if isinstance(model, (Mapping, list, tuple)):
            return self.serialize_value(model)
        return model

    def serialize_data_provider(self, provider: DataProvider) -> Any:
        models = provider.models()
        if not self.preserve_keys:
            models = list(models.values()) if isinstance(models, Mapping) else list(models)
        models = self.serialize_models(models)

        pagination = provider.pagination
        if pagination is not False:
            self.add_pagination_headers(pagination)

        if self.collection_envelope is None:
            return models

        result: dict[str, Any] = {self.collection_envelope: models}
        if pagination is not False:
            result[self.meta_envelope] = page_meta(pagination)
        return result

    def add_pagination_headers(self, pagination: Pagination) -> None:
        if self.response is None:
            return
        headers = self.response.headers
        headers["X-Pagination-Total-Count"] = str(pagination.total_count)
        headers["X-Pagination-Page-Count"] = str(pagination.page_count)
        headers["X-Pagination-Current-Page"] = str(pagination.page + 1)
        headers["X-Pagination-Per-Page"] = str(pagination.page_size)
        links = pagination.links(absolute=True)
        if links:
            headers["Link"] = ", ".join(f"<{url}>; rel={rel}" for rel, url in links.items())

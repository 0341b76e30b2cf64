"""可序列化资源基类。

字段定义支持两种写法：
- 名称列表：``["id", "title"]``，对外名与属性名相同；
- 名称映射：``{"name": "display_name", "label": lambda model, field: ...}``，
  值为属性名或 ``(model, field) -> value`` 回调。

``to_array`` 的 ``fields`` / ``expand`` 支持点号表示嵌套：``author.name``。
"""

from collections.abc import Callable, Iterable, Mapping
from typing import Any

FieldDefinition = str | Callable[[Any, str], Any]
FieldSpec = list[str] | tuple[str, ...] | Mapping[str, FieldDefinition]


def _normalize_spec(spec: FieldSpec) -> dict[str, FieldDefinition]:
    if isinstance(spec, Mapping):
        return dict(spec)
    return {name: name for name in spec}


def extract_root_fields(fields: Iterable[str]) -> list[str]:
    """提取顶层字段名，出现 ``*`` 时视为全部字段。"""
    result: list[str] = []
    for item in fields:
        root = item.split(".", 1)[0]
        if root == "*":
            return []
        if root and root not in result:
            result.append(root)
    return result


def extract_fields_for(fields: Iterable[str], root: str) -> list[str]:
    """提取某个字段下的嵌套字段名。"""
    prefix = f"{root}."
    return [item[len(prefix):] for item in fields if item.startswith(prefix)]


def _to_plain(value: Any, fields: list[str], expand: list[str]) -> Any:
    if isinstance(value, Arrayable):
        return value.to_array(fields, expand, True)
    if isinstance(value, Mapping):
        return {key: _to_plain(item, fields, expand) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_plain(item, fields, expand) for item in value]
    return value


class Arrayable:
    """可按字段选择转换为字典的对象。"""

    def fields(self) -> FieldSpec:
        """默认对外字段：全部公开实例属性。"""
        return [name for name in vars(self) if not name.startswith("_")]

    def extra_fields(self) -> FieldSpec:
        """需显式 expand 才输出的字段。"""
        return []

    def resolve_fields(self, fields: Iterable[str] = (), expand: Iterable[str] = ()) -> dict[str, FieldDefinition]:
        requested = extract_root_fields(fields)
        expanded = extract_root_fields(expand)

        result = {
            name: definition
            for name, definition in _normalize_spec(self.fields()).items()
            if not requested or name in requested
        }
        if not expanded:
            return result
        for name, definition in _normalize_spec(self.extra_fields()).items():
            if name in expanded:
                result[name] = definition
        return result

    def to_array(self, fields: Iterable[str] = (), expand: Iterable[str] = (), recursive: bool = True) -> dict[str, Any]:
        """按请求字段与扩展字段输出字典。"""
        fields = list(fields)
        expand = list(expand)
        data: dict[str, Any] = {}
        for name, definition in self.resolve_fields(fields, expand).items():
            value = getattr(self, definition) if isinstance(definition, str) else definition(self, name)
            if recursive:
                value = _to_plain(value, extract_fields_for(fields, name), extract_fields_for(expand, name))
            data[name] = value
        return data


class Resource(Arrayable):
    """携带校验错误与关联记录的资源。"""

    @property
    def _error_bag(self) -> dict[str, list[str]]:
        # ORM 实例从数据库加载时不会调用构造函数，错误容器按需创建。
        return vars(self).setdefault("_resource_errors", {})

    def add_error(self, attribute: str, message: str) -> None:
        self._error_bag.setdefault(attribute, []).append(message)

    def add_errors(self, errors: Mapping[str, str | Iterable[str]]) -> None:
        for attribute, messages in errors.items():
            if isinstance(messages, str):
                self.add_error(attribute, messages)
                continue
            for message in messages:
                self.add_error(attribute, message)

    def has_errors(self, attribute: str | None = None) -> bool:
        if attribute is None:
            return any(self._error_bag.values())
        return bool(self._error_bag.get(attribute))

    def get_errors(self, attribute: str | None = None) -> dict[str, list[str]] | list[str]:
        if attribute is None:
            return {name: list(messages) for name, messages in self._error_bag.items() if messages}
        return list(self._error_bag.get(attribute, []))

    def first_errors(self) -> dict[str, str]:
        """返回每个字段的首条错误。"""
        return {name: messages[0] for name, messages in self._error_bag.items() if messages}

    def first_error(self, attribute: str) -> str | None:
        messages = self._error_bag.get(attribute)
        return messages[0] if messages else None

    def clear_errors(self, attribute: str | None = None) -> None:
        if attribute is None:
            self._error_bag.clear()
        else:
            self._error_bag.pop(attribute, None)

    def related_records(self) -> dict[str, Any]:
        """已加载的关联记录，序列化时自动展开。"""
        return {}

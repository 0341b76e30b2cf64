"""表单资源：以 pydantic 模型描述输入规则。"""

from collections.abc import Mapping
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError

from api_envelope.resources.base import FieldSpec, Resource

FORM_ERROR_KEY = "form"


class FormResource(Resource):
    """载入请求数据、执行校验并收集字段错误。"""

    schema: ClassVar[type[BaseModel]]

    def __init__(self, **values: Any) -> None:
        for name in self.schema.model_fields:
            setattr(self, name, values.get(name))

    def fields(self) -> FieldSpec:
        return list(self.schema.model_fields)

    def load(self, data: Mapping[str, Any] | None) -> bool:
        """载入已声明字段，返回是否载入了任何数据。"""
        if not data:
            return False
        loaded = False
        for name in self.schema.model_fields:
            if name in data:
                setattr(self, name, data[name])
                loaded = True
        return loaded

    def values(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.schema.model_fields}

    def validate(self) -> bool:
        """执行校验，成功时写回规范化后的值。"""
        self.clear_errors()
        candidate = {name: value for name, value in self.values().items() if value is not None}
        try:
            validated = self.schema.model_validate(candidate)
        except ValidationError as exc:
            for error in exc.errors():
                location = ".".join(str(part) for part in error.get("loc", ()))
                self.add_error(location or FORM_ERROR_KEY, error.get("msg", "Invalid value."))
            return False

        for name, value in validated.model_dump().items():
            setattr(self, name, value)
        self.after_validate()
        return not self.has_errors()

    def after_validate(self) -> None:
        """校验通过后的附加规则，子类可在此调用 ``add_error``。"""

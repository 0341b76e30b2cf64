"""对象映射资源混入。"""

from typing import Any

from sqlalchemy import inspect as sa_inspect

from api_envelope.resources.base import FieldSpec, Resource


class OrmResource(Resource):
    """为声明式映射类提供默认字段定义。

    - 默认字段：全部映射列；
    - 扩展字段：全部关系，需 expand 才输出；
    - 关联记录：当前实例已加载的关系，序列化时自动展开。
    """

    def fields(self) -> FieldSpec:
        return [attr.key for attr in sa_inspect(type(self)).column_attrs]

    def extra_fields(self) -> FieldSpec:
        return [rel.key for rel in sa_inspect(type(self)).relationships]

    def related_records(self) -> dict[str, Any]:
        state = sa_inspect(self)
        unloaded = state.unloaded
        return {
            rel.key: getattr(self, rel.key)
            for rel in state.mapper.relationships
            if rel.key not in unloaded
        }

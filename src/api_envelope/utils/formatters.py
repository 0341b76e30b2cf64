"""响应格式化：JSON 与 XML 输出。"""

from collections.abc import Mapping
import re
from typing import Any
from xml.etree import ElementTree as ET

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

JSON = "json"
XML = "xml"
HTML = "html"
RAW = "raw"

_TAG_PATTERN = re.compile(r"^[A-Za-z_][\w.\-]*$")


class XmlResponse(Response):
    """将结构化数据渲染为 XML 文档。"""

    media_type = "application/xml"
    root_tag = "response"
    item_tag = "item"

    def render(self, content: Any) -> bytes:
        root = ET.Element(self.root_tag)
        self._build(root, content)
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)

    def _build(self, element: ET.Element, data: Any) -> None:
        if isinstance(data, Mapping):
            for key, value in data.items():
                tag = str(key)
                if not _TAG_PATTERN.match(tag):
                    tag = self.item_tag
                self._build(ET.SubElement(element, tag), value)
        elif isinstance(data, (list, tuple)):
            for value in data:
                self._build(ET.SubElement(element, self.item_tag), value)
        elif isinstance(data, bool):
            element.text = "true" if data else "false"
        elif data is not None:
            element.text = str(data)


def render_response(
    content: Any,
    fmt: str = JSON,
    *,
    status_code: int = 200,
    headers: Mapping[str, str] | None = None,
) -> Response:
    """按协商格式构造响应对象。"""
    payload = jsonable_encoder(content)
    response_headers = dict(headers) if headers else None
    if fmt == XML:
        return XmlResponse(payload, status_code=status_code, headers=response_headers)
    return JSONResponse(payload, status_code=status_code, headers=response_headers)

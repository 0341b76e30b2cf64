"""响应格式协商。"""

from collections.abc import Mapping

from starlette.requests import Request

from api_envelope.core.errors import NotAcceptableFault
from api_envelope.utils.formatters import HTML, JSON, RAW, XML

DEFAULT_FORMATS: dict[str, str] = {
    "application/json": JSON,
    "application/xml": XML,
}


def parse_accept(header: str | None) -> list[str]:
    """按 q 值降序解析 Accept 头，q=0 的类型被忽略。"""
    if not header:
        return []
    items: list[tuple[float, int, str]] = []
    for index, part in enumerate(header.split(",")):
        media, *params = [piece.strip() for piece in part.split(";")]
        if not media:
            continue
        quality = 1.0
        for param in params:
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality > 0:
            items.append((quality, index, media.lower()))
    items.sort(key=lambda item: (-item[0], item[1]))
    return [media for _, _, media in items]


class ContentNegotiator:
    """根据 ``_format`` 查询参数或 Accept 头选择响应格式。"""

    def __init__(self, formats: Mapping[str, str] | None = None, format_param: str = "_format") -> None:
        self.formats = dict(formats or DEFAULT_FORMATS)
        self.format_param = format_param

    @property
    def default_format(self) -> str:
        return next(iter(self.formats.values()))

    def negotiate(self, request: Request) -> str:
        requested = request.query_params.get(self.format_param)
        if requested:
            if requested in self.formats.values():
                return requested
            raise NotAcceptableFault(f"The requested response format is not supported: {requested}")

        accepted = parse_accept(request.headers.get("accept"))
        if not accepted:
            return self.default_format
        for media in accepted:
            if media in self.formats:
                return self.formats[media]
            if media == "*/*":
                return self.default_format
            major, _, minor = media.partition("/")
            if minor == "*":
                for candidate, fmt in self.formats.items():
                    if candidate.startswith(f"{major}/"):
                        return fmt
        raise NotAcceptableFault()


def detect_format(request: Request) -> str:
    """异常渲染使用的格式：优先已协商格式，否则按 Accept 推断。"""
    negotiated = getattr(request.state, "response_format", None)
    if negotiated:
        return negotiated
    for media in parse_accept(request.headers.get("accept")):
        if media in ("text/html", "application/xhtml+xml"):
            return HTML
        if media == "text/plain":
            return RAW
        if media in ("application/xml", "text/xml"):
            return XML
        if media in ("application/json", "*/*"):
            return JSON
    return JSON

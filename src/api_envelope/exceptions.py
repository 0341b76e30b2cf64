"""全局异常渲染与注册。

职责:
1. 将任意异常转换为统一包裹结构（或 HTML / 纯文本），保证只输出一个响应。
2. 仅在调试模式输出异常类型、文件位置与调用栈；非调试模式下非业务异常统一脱敏。
3. 按异常类型映射 HTTP 状态码并保留故障自带的响应头。
"""

from collections.abc import Callable
from http import HTTPStatus
import html
import inspect
import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from sqlalchemy.exc import NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from api_envelope.core.errors import ApiFault, NotFoundFault, ValidationFault
from api_envelope.services.negotiation import detect_format
from api_envelope.utils.formatters import HTML, RAW, render_response
from api_envelope.utils.response import DEFAULT_ERROR_MESSAGE, VALIDATION_FAILED_MESSAGE, fail

logger = logging.getLogger(__name__)

ErrorAction = Callable[[Request, Exception], Any]

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
</head>
<body>
<h1>{title}</h1>
{detail}
</body>
</html>
"""


def _status_phrase(status_code: int, fallback: Any = None) -> str:
    """标准状态短语；非标准状态码回退到异常说明。"""
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return str(fallback) if fallback else "Error"


def _normalize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """将框架校验错误转换为字段错误列表。"""
    normalized: list[dict[str, str]] = []
    for item in errors:
        loc = [str(part) for part in item.get("loc", ()) if part not in ("body", "query", "path", "header", "cookie")]
        normalized.append({"field": ".".join(loc) or "request", "message": str(item.get("msg", "Invalid value."))})
    return normalized


class ErrorHandler:
    """异常渲染器。"""

    def __init__(self, *, debug: bool = False, error_action: ErrorAction | None = None) -> None:
        self.debug = debug
        self.error_action = error_action

    async def __call__(self, request: Request, exc: Exception) -> Response:
        return await self.render_exception(request, exc)

    @staticmethod
    def is_user_exception(exc: Exception) -> bool:
        """可直接向调用方展示信息的异常。"""
        return isinstance(exc, (StarletteHTTPException, RequestValidationError, NoResultFound))

    @staticmethod
    def status_code_for(exc: Exception) -> int:
        if isinstance(exc, StarletteHTTPException):
            return exc.status_code
        if isinstance(exc, RequestValidationError):
            return ValidationFault.http_status
        if isinstance(exc, NoResultFound):
            return NotFoundFault.http_status
        return HTTPStatus.INTERNAL_SERVER_ERROR.value

    def exception_name(self, exc: Exception) -> str:
        if isinstance(exc, ApiFault):
            return exc.name
        if self.is_user_exception(exc) or not self.debug:
            return _status_phrase(self.status_code_for(exc), getattr(exc, "detail", None))
        return type(exc).__name__

    def exception_message(self, exc: Exception) -> str:
        if isinstance(exc, StarletteHTTPException):
            detail = exc.detail
            if isinstance(detail, dict):
                detail = detail.get("message")
            return str(detail) if detail else _status_phrase(exc.status_code)
        if isinstance(exc, RequestValidationError):
            return VALIDATION_FAILED_MESSAGE
        if isinstance(exc, NoResultFound):
            return NotFoundFault.default_message
        if self.debug:
            return str(exc) or type(exc).__name__
        return DEFAULT_ERROR_MESSAGE

    def exception_data(self, exc: Exception) -> Any:
        if isinstance(exc, RequestValidationError):
            return _normalize_validation_errors(list(exc.errors()))
        if isinstance(exc, ApiFault) and exc.data is not None:
            return exc.data
        if not self.debug:
            return None
        return self._debug_data(exc)

    def _debug_data(self, exc: BaseException) -> dict[str, Any]:
        frames = traceback.extract_tb(exc.__traceback__)
        last = frames[-1] if frames else None
        data: dict[str, Any] = {
            "name": self.exception_name(exc) if isinstance(exc, Exception) else type(exc).__name__,
            "type": f"{type(exc).__module__}.{type(exc).__qualname__}",
            "file": last.filename if last else None,
            "line": last.lineno if last else None,
            "stack-trace": traceback.format_tb(exc.__traceback__),
        }
        previous = exc.__cause__ or exc.__context__
        if previous is not None:
            data["previous"] = {
                "type": f"{type(previous).__module__}.{type(previous).__qualname__}",
                "message": str(previous),
            }
        return data

    def convert_exception_to_array(self, exc: Exception) -> dict[str, Any]:
        """转换为与 fail() 相同形状的包裹结构。"""
        status_code = self.status_code_for(exc)
        if not self.debug and not self.is_user_exception(exc):
            return fail(status_code, DEFAULT_ERROR_MESSAGE)
        code = exc.code if isinstance(exc, ApiFault) and exc.code else status_code
        return fail(code, self.exception_message(exc), self.exception_data(exc))

    def convert_exception_to_string(self, exc: Exception) -> str:
        if self.is_user_exception(exc):
            return f"{self.exception_name(exc)}: {self.exception_message(exc)}"
        if self.debug:
            return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return DEFAULT_ERROR_MESSAGE

    def render_exception_page(self, exc: Exception) -> str:
        title = html.escape(self.exception_name(exc))
        if self.debug:
            detail = f"<pre>{html.escape(self.convert_exception_to_string(exc))}</pre>"
        else:
            detail = f"<p>{html.escape(self.exception_message(exc))}</p>"
        return _PAGE_TEMPLATE.format(title=title, detail=detail)

    @staticmethod
    def is_ajax(request: Request) -> bool:
        return request.headers.get("x-requested-with", "").lower() == "xmlhttprequest"

    def log_exception(self, request: Request, exc: Exception, status_code: int) -> None:
        if status_code >= 500:
            logger.error(
                "unhandled exception method=%s path=%s",
                request.method,
                request.url.path,
                exc_info=(type(exc), exc, exc.__traceback__),
            )
        else:
            logger.info(
                "request failed method=%s path=%s status=%s error=%s",
                request.method,
                request.url.path,
                status_code,
                self.exception_message(exc),
            )

    async def render_exception(self, request: Request, exc: Exception) -> Response:
        """渲染异常；每次都构造新的响应对象，动作内已写入的响应状态全部丢弃。"""
        status_code = self.status_code_for(exc)
        headers = getattr(exc, "headers", None) or None
        self.log_exception(request, exc, status_code)
        fmt = detect_format(request)

        if self.error_action is not None:
            result = self.error_action(request, exc)
            if inspect.isawaitable(result):
                result = await result
            if isinstance(result, Response):
                return result
            return render_response(result, fmt, status_code=status_code, headers=headers)

        if fmt == HTML:
            if self.is_ajax(request):
                body = f"<pre>{html.escape(self.convert_exception_to_string(exc))}</pre>"
            else:
                body = self.render_exception_page(exc)
            return HTMLResponse(body, status_code=status_code, headers=headers)
        if fmt == RAW:
            return PlainTextResponse(self.convert_exception_to_string(exc), status_code=status_code, headers=headers)
        return render_response(self.convert_exception_to_array(exc), fmt, status_code=status_code, headers=headers)


def register_exception_handlers(app: FastAPI, handler: ErrorHandler | None = None) -> ErrorHandler:
    """集中注册全局异常处理器。"""
    handler = handler or ErrorHandler()
    app.add_exception_handler(StarletteHTTPException, handler)
    app.add_exception_handler(RequestValidationError, handler)
    app.add_exception_handler(NoResultFound, handler)
    app.add_exception_handler(Exception, handler)
    app.state.error_handler = handler
    return handler

"""接口故障分类。

所有故障均继承自 ``HTTPException``，由异常渲染器统一转换为包裹结构：

- ``ValidationFault``      422 数据校验失败
- ``AuthenticationFault``  401 未认证或凭证无效
- ``AuthorizationFault``   403 无权访问
- ``NotFoundFault``        404 资源不存在
- ``MethodNotAllowedFault`` 405 请求方法不允许
- ``NotAcceptableFault``   406 无法满足内容协商
- ``RateLimitFault``       429 请求过于频繁
- ``InternalFault``        500 服务内部错误
"""

from collections.abc import Mapping
from typing import Any

from fastapi import HTTPException, status


class ApiFault(HTTPException):
    """可安全展示给调用方的接口故障基类。"""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    name: str = "Internal Server Error"
    default_message: str = "An internal server error occurred."

    def __init__(
        self,
        message: str | None = None,
        *,
        code: int = 0,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            status_code=self.http_status,
            detail=message or self.default_message,
            headers=dict(headers) if headers else None,
        )
        # 业务错误码，为 0 时包裹结构使用 HTTP 状态码。
        self.code = code
        # 附加到包裹结构 data 字段的内容。
        self.data = data

    @property
    def message(self) -> str:
        return str(self.detail)


class ValidationFault(ApiFault):
    http_status = 422
    name = "Unprocessable Entity"
    default_message = "Data Validation Failed."


class AuthenticationFault(ApiFault):
    http_status = status.HTTP_401_UNAUTHORIZED
    name = "Unauthorized"
    default_message = "Your request was made with invalid credentials."


class AuthorizationFault(ApiFault):
    http_status = status.HTTP_403_FORBIDDEN
    name = "Forbidden"
    default_message = "You are not allowed to perform this action."


class NotFoundFault(ApiFault):
    http_status = status.HTTP_404_NOT_FOUND
    name = "Not Found"
    default_message = "Object not found."


class MethodNotAllowedFault(ApiFault):
    http_status = status.HTTP_405_METHOD_NOT_ALLOWED
    name = "Method Not Allowed"
    default_message = "Method Not Allowed."


class NotAcceptableFault(ApiFault):
    http_status = status.HTTP_406_NOT_ACCEPTABLE
    name = "Not Acceptable"
    default_message = "None of your requested content types is supported."


class RateLimitFault(ApiFault):
    http_status = status.HTTP_429_TOO_MANY_REQUESTS
    name = "Too Many Requests"
    default_message = "Rate limit exceeded."


class InternalFault(ApiFault):
    pass

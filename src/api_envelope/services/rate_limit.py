"""接口限流。

基于 limits 滑动窗口计数，调用方身份依次取令牌主体、会话用户、客户端地址。
"""

from collections.abc import Callable
from functools import lru_cache
import logging
import time

from limits import parse
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import Response

from api_envelope.core.config import get_settings
from api_envelope.core.errors import AuthenticationFault, RateLimitFault
from api_envelope.core.security import SESSION_USER_KEY, parse_authorization_header

logger = logging.getLogger(__name__)


def caller_identity(request: Request) -> str:
    """限流键：令牌主体 > 会话用户 > 客户端地址。"""
    authorization = request.headers.get("authorization")
    if authorization:
        try:
            return f"token:{parse_authorization_header(authorization).subject}"
        except AuthenticationFault:
            pass
    if "session" in request.scope:
        user_id = request.session.get(SESSION_USER_KEY)
        if user_id:
            return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


class RateLimiter:
    """按调用方身份计数的请求限流器。"""

    def __init__(
        self,
        limit: str = "120/minute",
        *,
        storage_uri: str = "memory://",
        enable_headers: bool = True,
        key_func: Callable[[Request], str] = caller_identity,
        scope: str = "api",
    ) -> None:
        self.item = parse(limit)
        self.strategy = MovingWindowRateLimiter(storage_from_string(storage_uri))
        self.enable_headers = enable_headers
        self.key_func = key_func
        self.scope = scope

    def check(self, request: Request, response: Response | None = None) -> None:
        """计数一次，超限时抛出 429。"""
        key = self.key_func(request)
        allowed = self.strategy.hit(self.item, self.scope, key)
        reset_time, remaining = self.strategy.get_window_stats(self.item, self.scope, key)
        headers = {
            "X-Rate-Limit-Limit": str(self.item.amount),
            "X-Rate-Limit-Remaining": str(max(0, remaining)),
            "X-Rate-Limit-Reset": str(max(0, int(reset_time - time.time()))),
        }
        if self.enable_headers and response is not None:
            response.headers.update(headers)
        if not allowed:
            logger.warning("rate limit exceeded key=%s limit=%s", key, self.item)
            raise RateLimitFault(headers=headers if self.enable_headers else None)


@lru_cache
def get_default_rate_limiter() -> RateLimiter | None:
    """返回按配置构造的共享限流器，关闭限流时返回 None。"""
    settings = get_settings()
    if not settings.rate_limit_enabled:
        return None
    return RateLimiter(settings.rate_limit_default, storage_uri=settings.rate_limit_storage_uri)

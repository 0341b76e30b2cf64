"""认证解析与令牌校验工具。"""

from dataclasses import dataclass, field
import re
from typing import Any

import jwt
from jwt import InvalidTokenError
from starlette.requests import Request

from api_envelope.core.config import get_settings
from api_envelope.core.errors import AuthenticationFault

BEARER_CHALLENGE = {"WWW-Authenticate": 'Bearer realm="api"'}
SESSION_USER_KEY = "user_id"
SESSION_NAME_KEY = "username"


@dataclass
class AuthenticatedPrincipal:
    """统一认证主体对象。"""

    # 主体标识（sub 或会话中的用户 ID）。
    subject: str
    # 认证来源：令牌签发方或 session。
    provider: str
    # 可选邮箱。
    email: str | None = None
    # 可选展示名。
    display_name: str | None = None
    # 原始声明集，便于下游扩展。
    claims: dict[str, Any] = field(default_factory=dict)


def _unauthorized(message: str | None = None) -> AuthenticationFault:
    return AuthenticationFault(message, headers=BEARER_CHALLENGE)


def _decode_jwt(token: str) -> dict[str, Any]:
    """按配置解码并校验令牌。"""
    settings = get_settings()
    options = {"verify_signature": True, "verify_aud": bool(settings.auth_jwt_audience)}
    try:
        return jwt.decode(
            token,
            key=settings.auth_jwt_secret,
            algorithms=settings.auth_algorithms,
            issuer=settings.auth_jwt_issuer,
            audience=settings.auth_jwt_audience,
            leeway=settings.auth_jwt_leeway_seconds,
            options=options,
        )
    except InvalidTokenError as exc:
        raise _unauthorized() from exc


def _extract_bearer_token(authorization: str | None) -> str:
    """从 Authorization 头中提取 Bearer token，兼容重复头被逗号拼接的场景。"""
    if not authorization:
        raise _unauthorized()
    tokens = [item.strip() for item in re.findall(r"Bearer\s+([^,\s]+)", authorization, flags=re.IGNORECASE)]
    tokens = [item for item in tokens if item]
    if not tokens:
        raise _unauthorized()
    # 重复头按最后一次出现为准。
    return tokens[-1]


def _claim_text(claims: dict[str, Any], *names: str) -> str | None:
    for name in names:
        value = claims.get(name)
        if isinstance(value, str) and value:
            return value
    return None


def principal_from_claims(claims: dict[str, Any]) -> AuthenticatedPrincipal:
    """由已校验的声明集构造认证主体，缺少 sub 时视为未认证。"""
    subject = str(claims.get("sub") or "").strip()
    if not subject:
        raise _unauthorized()
    return AuthenticatedPrincipal(
        subject=subject,
        provider=_claim_text(claims, "provider", "iss") or "jwt",
        email=_claim_text(claims, "email"),
        display_name=_claim_text(claims, "name", "preferred_username"),
        claims=claims,
    )


def parse_authorization_header(authorization: str | None) -> AuthenticatedPrincipal:
    """解析认证头并返回认证主体。"""
    return principal_from_claims(_decode_jwt(_extract_bearer_token(authorization)))


def authenticate_bearer(request: Request) -> AuthenticatedPrincipal:
    """Bearer 认证器：缺失或无效凭证时抛出 401。"""
    return parse_authorization_header(request.headers.get("authorization"))


def resolve_session_principal(request: Request) -> AuthenticatedPrincipal | None:
    """会话认证器：未登录时返回 None。"""
    if "session" not in request.scope:
        return None
    user_id = request.session.get(SESSION_USER_KEY)
    if not user_id:
        return None
    username = request.session.get(SESSION_NAME_KEY)
    return AuthenticatedPrincipal(
        subject=str(user_id),
        provider="session",
        display_name=username if isinstance(username, str) else None,
    )

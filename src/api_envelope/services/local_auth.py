"""本地账号认证服务：口令哈希与访问令牌签发。"""

from __future__ import annotations

import base64
import binascii
from datetime import datetime, timedelta, timezone
import hashlib
import hmac
import secrets
from typing import TYPE_CHECKING, NamedTuple
from uuid import uuid4

import jwt

from api_envelope.core.config import get_settings

if TYPE_CHECKING:
    from api_envelope.models.user import User

PASSWORD_SCHEME = "pbkdf2_sha256"
SALT_BYTES = 16


class PasswordHash(NamedTuple):
    """口令哈希的组成部分，序列化格式为 ``scheme$iterations$salt$digest``。"""

    iterations: int
    salt: bytes
    digest: bytes

    def encode(self) -> str:
        salt_b64 = base64.b64encode(self.salt).decode("ascii")
        digest_b64 = base64.b64encode(self.digest).decode("ascii")
        return f"{PASSWORD_SCHEME}${self.iterations}${salt_b64}${digest_b64}"

    @classmethod
    def decode(cls, value: str) -> PasswordHash | None:
        """解析哈希串，格式不合法时返回 None。"""
        try:
            scheme, iterations_text, salt_b64, digest_b64 = value.split("$", 3)
            if scheme != PASSWORD_SCHEME:
                return None
            return cls(
                iterations=int(iterations_text),
                salt=base64.b64decode(salt_b64.encode("ascii")),
                digest=base64.b64decode(digest_b64.encode("ascii")),
            )
        except (ValueError, TypeError, binascii.Error):
            return None


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str) -> str:
    """按当前配置的迭代次数生成口令哈希。"""
    iterations = get_settings().auth_password_hash_iterations
    salt = secrets.token_bytes(SALT_BYTES)
    return PasswordHash(iterations, salt, _derive(password, salt, iterations)).encode()


def verify_password(password: str, password_hash: str) -> bool:
    """校验口令是否匹配。"""
    parsed = PasswordHash.decode(password_hash)
    if parsed is None:
        return False
    return hmac.compare_digest(_derive(password, parsed.salt, parsed.iterations), parsed.digest)


def needs_rehash(password_hash: str) -> bool:
    """迭代次数与当前配置不一致时需要重新哈希。"""
    parsed = PasswordHash.decode(password_hash)
    return parsed is None or parsed.iterations != get_settings().auth_password_hash_iterations


def issue_access_token(user: User) -> tuple[str, int]:
    """签发访问令牌，返回令牌与有效秒数。"""
    settings = get_settings()
    ttl = settings.auth_access_token_ttl_seconds
    issued_at = datetime.now(timezone.utc)

    claims: dict[str, object] = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.display_name,
        "preferred_username": user.username,
        "provider": settings.auth_local_issuer,
        "iss": settings.auth_jwt_issuer or settings.auth_local_issuer,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=ttl),
        "jti": uuid4().hex,
    }
    if settings.auth_jwt_audience:
        claims["aud"] = settings.auth_jwt_audience

    return jwt.encode(claims, settings.auth_jwt_secret, algorithm=settings.auth_algorithms[0]), ttl

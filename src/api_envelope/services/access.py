"""动作级访问控制。

两种模式：
- Bearer 模式：``optional`` 中的动作跳过认证，其余动作必须携带有效令牌；
- 会话模式：按规则顺序匹配，首个命中的规则决定放行或拒绝，无命中则拒绝。
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import logging

from starlette.requests import Request

from api_envelope.core.errors import AuthenticationFault, AuthorizationFault
from api_envelope.core.security import AuthenticatedPrincipal

logger = logging.getLogger(__name__)

BearerAuthenticator = Callable[[Request], AuthenticatedPrincipal]
SessionAuthenticator = Callable[[Request], AuthenticatedPrincipal | None]

LOGIN_REQUIRED_MESSAGE = "Login Required"


@dataclass(frozen=True)
class AccessRule:
    """访问规则。

    ``actions`` / ``verbs`` 为空表示匹配全部；
    ``authenticated`` 为 True 仅匹配已登录主体，False 仅匹配访客，None 不限。
    """

    allow: bool
    actions: frozenset[str] = frozenset()
    authenticated: bool | None = None
    verbs: frozenset[str] = frozenset()

    def matches(self, action: str, principal: AuthenticatedPrincipal | None, method: str) -> bool:
        if self.actions and action not in self.actions:
            return False
        if self.verbs and method.upper() not in self.verbs:
            return False
        if self.authenticated is True and principal is None:
            return False
        if self.authenticated is False and principal is not None:
            return False
        return True


def build_session_rules(optional: Iterable[str] = ()) -> list[AccessRule]:
    """会话模式默认规则：已登录放行；optional 动作额外对访客放行。"""
    rules = [AccessRule(allow=True, authenticated=True)]
    optional = frozenset(optional)
    if optional:
        rules.append(AccessRule(allow=True, actions=optional, authenticated=False))
    return rules


class AccessGate:
    """控制器动作的认证与粗粒度访问检查。"""

    def __init__(
        self,
        *,
        bearer_authenticator: BearerAuthenticator,
        session_authenticator: SessionAuthenticator,
        enable_bearer_auth: bool = False,
        optional: Iterable[str] = (),
        rules: Iterable[AccessRule] | None = None,
    ) -> None:
        self.bearer_authenticator = bearer_authenticator
        self.session_authenticator = session_authenticator
        self.enable_bearer_auth = enable_bearer_auth
        self.optional = frozenset(optional)
        self.rules = list(rules) if rules is not None else build_session_rules(self.optional)

    def authorize(self, action: str, request: Request) -> AuthenticatedPrincipal | None:
        """返回当前主体（访客为 None），拒绝时抛出 401/403。"""
        if self.enable_bearer_auth:
            if action in self.optional:
                return None
            return self.bearer_authenticator(request)

        principal = self.session_authenticator(request)
        for rule in self.rules:
            if not rule.matches(action, principal, request.method):
                continue
            if rule.allow:
                return principal
            break
        self.deny(action, principal)

    def deny(self, action: str, principal: AuthenticatedPrincipal | None) -> None:
        if principal is None:
            logger.info("guest denied action=%s", action)
            raise AuthenticationFault(LOGIN_REQUIRED_MESSAGE)
        logger.warning("principal denied action=%s subject=%s", action, principal.subject)
        raise AuthorizationFault()

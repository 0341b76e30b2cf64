"""路由层公共依赖。

职责:
1. 暴露控制器动作上下文（认证主体、动作标识）。
2. 将认证主体映射为本地账号。
"""

from uuid import UUID

from fastapi import Depends
from sqlalchemy.orm import Session

from api_envelope.controller import ActionContext, get_action_context
from api_envelope.core.errors import AuthenticationFault
from api_envelope.db.session import get_db
from api_envelope.models.user import User

__all__ = ["get_action_context", "get_current_user"]


def _load_user(db: Session, subject: str) -> User | None:
    try:
        user_id = UUID(subject)
    except ValueError:
        return None
    return db.get(User, user_id)


def get_current_user(
    context: ActionContext = Depends(get_action_context),
    db: Session = Depends(get_db),
) -> User:
    """返回当前登录用户，主体对应的账号不存在时视为未认证。"""
    if context.principal is None:
        raise AuthenticationFault("Login Required")
    user = _load_user(db, context.principal.subject)
    if user is None:
        raise AuthenticationFault()
    return user

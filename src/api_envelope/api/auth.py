"""认证接口。

令牌登录与会话登录并存：
- ``POST /auth/login`` 签发访问令牌，供 Bearer 模式控制器使用；
- ``POST /auth/session`` 写入会话，供会话模式控制器使用。
"""

from typing import Any

from fastapi import Body, Depends, Request
from sqlalchemy.orm import Session

from api_envelope.controller import RestController
from api_envelope.core.security import SESSION_NAME_KEY, SESSION_USER_KEY
from api_envelope.db.session import get_db
from api_envelope.dependencies import get_current_user
from api_envelope.models.forms import LoginForm, RegisterForm
from api_envelope.models.user import User
from api_envelope.schemas.auth import TokenData, UserData
from api_envelope.schemas.common import Envelope, ErrorEnvelope
from api_envelope.services.local_auth import hash_password, issue_access_token
from api_envelope.utils.response import VALIDATION_FAILED_MESSAGE, VALIDATION_FAILED_STATUS


class AuthController(RestController):
    def verbs(self) -> dict[str, list[str]]:
        return {
            "register": ["POST"],
            "login": ["POST"],
            "session_login": ["POST"],
            "session_logout": ["DELETE"],
            "me": ["GET"],
        }


controller = AuthController(
    prefix="/auth",
    tags=["auth"],
    enable_bearer_auth=True,
    optional={"register", "login", "session_login", "session_logout"},
)
router = controller.router


def _validation_failed(form: Any) -> dict[str, Any]:
    return controller.fail(VALIDATION_FAILED_STATUS, VALIDATION_FAILED_MESSAGE, form)


@controller.action(
    "register",
    "/register",
    status_code=201,
    summary="注册本地账号",
    description="创建本地账号，登录名与邮箱均需唯一。",
    response_model=Envelope[UserData],
    responses={422: {"model": ErrorEnvelope}},
)
def register(payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    """注册本地账号。"""
    form = RegisterForm()
    form.load(payload)
    if not form.validate() or not form.ensure_unique(db):
        return _validation_failed(form)

    user = User(
        username=form.username,
        email=form.email.lower(),
        display_name=(form.display_name or form.username).strip(),
        password_hash=hash_password(form.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return controller.success(user)


@controller.action(
    "login",
    "/login",
    summary="令牌登录",
    description="校验登录名与口令，签发访问令牌。",
    response_model=Envelope[TokenData],
    responses={422: {"model": ErrorEnvelope}},
)
def login(payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    """令牌登录。"""
    form = LoginForm()
    form.load(payload)
    user = form.authenticate(db)
    if user is None:
        return _validation_failed(form)

    token, expires_in = issue_access_token(user)
    return controller.success(
        {"access_token": token, "token_type": "Bearer", "expires_in": expires_in, "user": user}
    )


@controller.action(
    "session_login",
    "/session",
    summary="会话登录",
    description="校验登录名与口令，将登录状态写入会话 Cookie。",
    response_model=Envelope[UserData],
    responses={422: {"model": ErrorEnvelope}},
)
def session_login(request: Request, payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    """会话登录。"""
    form = LoginForm()
    form.load(payload)
    user = form.authenticate(db)
    if user is None:
        return _validation_failed(form)

    request.session[SESSION_USER_KEY] = str(user.id)
    request.session[SESSION_NAME_KEY] = user.username
    return controller.success(user)


@controller.action(
    "session_logout",
    "/session",
    summary="会话登出",
    description="清除会话中的登录状态。",
    response_model=Envelope[None],
)
def session_logout(request: Request):
    """会话登出。"""
    request.session.clear()
    return controller.success()


@controller.action(
    "me",
    "/me",
    summary="当前账号",
    description="返回访问令牌对应的账号信息，支持 expand=articles。",
    response_model=Envelope[UserData],
    responses={401: {"model": ErrorEnvelope}},
)
def me(user: User = Depends(get_current_user)):
    """返回当前账号。"""
    return controller.success(user)

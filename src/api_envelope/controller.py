"""REST 控制器基类。

每个动作通过 ``@controller.action(...)`` 注册到控制器路由，执行顺序：

1. 前置行为链（``behaviors()``）：内容协商 -> 限流 -> 认证与访问规则 -> 细粒度鉴权；
2. 动作函数返回包裹结构（``success`` / ``fail`` / ``pagination``）；
3. 序列化 ``data`` 并按协商格式输出，动作内对响应状态码与响应头的修改会被保留。

请求方法限制由路由完成，不匹配时返回 405。
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
import inspect
from typing import Annotated, Any, get_args, get_origin, get_type_hints

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from api_envelope.core.config import get_settings
from api_envelope.core.errors import AuthorizationFault, InternalFault, NotFoundFault
from api_envelope.core.security import (
    AuthenticatedPrincipal,
    authenticate_bearer,
    resolve_session_principal,
)
from api_envelope.services.access import AccessGate, AccessRule, BearerAuthenticator, SessionAuthenticator
from api_envelope.services.negotiation import ContentNegotiator
from api_envelope.services.rate_limit import RateLimiter, get_default_rate_limiter
from api_envelope.services.serializer import Serializer
from api_envelope.utils import response as envelope
from api_envelope.utils.formatters import JSON, render_response

_UNSET: Any = object()

Behavior = Callable[["ActionContext", Response], None]


@dataclass
class ActionContext:
    """当前动作执行上下文。"""

    # 动作标识，与 optional / 访问规则中的名称对应。
    action: str
    controller: "RestController"
    request: Request
    # 当前认证主体，访客为 None。
    principal: AuthenticatedPrincipal | None = None

    @property
    def is_guest(self) -> bool:
        return self.principal is None

    def ensure_access(self, id: Any = None, model: Any = None, params: Mapping[str, Any] | None = None) -> None:
        """执行细粒度鉴权，拒绝时抛出 403。"""
        allowed = self.controller.check_access(
            self.action,
            id,
            model,
            dict(params or {}),
            principal=self.principal,
        )
        if not allowed:
            raise AuthorizationFault()


def get_action_context(request: Request) -> ActionContext:
    """在动作函数中获取执行上下文。"""
    context = getattr(request.state, "action_context", None)
    if context is None:
        raise InternalFault()
    return context


def _find_param(signature: inspect.Signature, hints: Mapping[str, Any], cls: type) -> str | None:
    for name in signature.parameters:
        hint = hints.get(name)
        if get_origin(hint) is Annotated:
            hint = get_args(hint)[0]
        if isinstance(hint, type) and issubclass(hint, cls):
            return name
    return None


def _append_keyword(parameters: list[inspect.Parameter], name: str, annotation: type) -> None:
    extra = inspect.Parameter(name, inspect.Parameter.KEYWORD_ONLY, annotation=annotation)
    if parameters and parameters[-1].kind is inspect.Parameter.VAR_KEYWORD:
        parameters.insert(len(parameters) - 1, extra)
    else:
        parameters.append(extra)


class RestController:
    """提供统一包裹输出与访问控制的控制器。"""

    # 细粒度鉴权时从路径参数中读取资源标识的参数名。
    id_param = "id"

    def __init__(
        self,
        *,
        prefix: str = "",
        tags: list[str] | None = None,
        enable_bearer_auth: bool | None = None,
        optional: Iterable[str] = (),
        collection_envelope: str | None = _UNSET,
        meta_envelope: str | None = None,
        preserve_keys: bool | None = None,
        negotiator: ContentNegotiator | None = None,
        rate_limiter: RateLimiter | None = _UNSET,
        bearer_authenticator: BearerAuthenticator = authenticate_bearer,
        session_authenticator: SessionAuthenticator = resolve_session_principal,
    ) -> None:
        settings = get_settings()
        self.router = APIRouter(prefix=prefix, tags=tags)
        self.enable_bearer_auth = settings.enable_bearer_auth if enable_bearer_auth is None else enable_bearer_auth
        self.optional = frozenset(optional)
        self.collection_envelope = (
            settings.collection_envelope if collection_envelope is _UNSET else collection_envelope
        )
        self.meta_envelope = meta_envelope or settings.meta_envelope
        self.preserve_keys = settings.preserve_keys if preserve_keys is None else preserve_keys
        self.fields_param = settings.fields_param
        self.expand_param = settings.expand_param
        self.negotiator = negotiator or ContentNegotiator()
        self._rate_limiter = rate_limiter
        self.gate = AccessGate(
            bearer_authenticator=bearer_authenticator,
            session_authenticator=session_authenticator,
            enable_bearer_auth=self.enable_bearer_auth,
            optional=self.optional,
            rules=self.access_rules(),
        )

    @property
    def rate_limiter(self) -> RateLimiter | None:
        if self._rate_limiter is _UNSET:
            return get_default_rate_limiter()
        return self._rate_limiter

    def verbs(self) -> dict[str, list[str]]:
        """动作允许的请求方法，未声明的动作默认仅允许 GET。"""
        return {}

    def access_rules(self) -> list[AccessRule] | None:
        """会话模式的访问规则，返回 None 使用默认规则。"""
        return None

    def check_access(
        self,
        action: str,
        id: Any = None,
        model: Any = None,
        params: Mapping[str, Any] | None = None,
        *,
        principal: AuthenticatedPrincipal | None = None,
    ) -> bool:
        """细粒度鉴权钩子，子类按需覆盖；传入 model 时以 model 为准。"""
        return True

    # ----- 包裹结构 -----

    def success(self, data: Any = None) -> dict[str, Any]:
        return envelope.success(data)

    def fail(self, status: int, error: str, data: Any = None) -> dict[str, Any]:
        return envelope.fail(status, error, data)

    def pagination(self, source: envelope.PageInfoSource, data: Any) -> dict[str, Any]:
        return envelope.pagination(source, data)

    # ----- 前置行为链 -----

    def behaviors(self) -> list[Behavior]:
        return [self._negotiate, self._limit_rate, self._authorize, self._check_access]

    def _negotiate(self, context: ActionContext, response: Response) -> None:
        context.request.state.response_format = self.negotiator.negotiate(context.request)

    def _limit_rate(self, context: ActionContext, response: Response) -> None:
        limiter = self.rate_limiter
        if limiter is not None:
            limiter.check(context.request, response)

    def _authorize(self, context: ActionContext, response: Response) -> None:
        context.principal = self.gate.authorize(context.action, context.request)

    def _check_access(self, context: ActionContext, response: Response) -> None:
        request = context.request
        context.ensure_access(id=request.path_params.get(self.id_param), params=request.query_params)

    def before_action(self, action_id: str) -> Callable[[Request, Response], ActionContext]:
        """构造动作前置依赖。"""

        def dependency(request: Request, response: Response) -> ActionContext:
            context = ActionContext(action=action_id, controller=self, request=request)
            for behavior in self.behaviors():
                behavior(context, response)
            request.state.action_context = context
            return context

        return dependency

    # ----- 输出 -----

    def create_serializer(self, request: Request, response: Response | None) -> Serializer:
        return Serializer(
            request,
            response,
            collection_envelope=self.collection_envelope,
            meta_envelope=self.meta_envelope,
            preserve_keys=self.preserve_keys,
            fields_param=self.fields_param,
            expand_param=self.expand_param,
        )

    def serialize_data(self, data: Any, request: Request, response: Response | None = None) -> Any:
        return self.create_serializer(request, response).serialize(data)

    def after_action(self, request: Request, response: Response, result: Any, default_status: int = 200) -> Response:
        """序列化动作结果并按协商格式输出。"""
        if isinstance(result, Response):
            return result
        data = self.serialize_data(result, request, response)
        fmt = getattr(request.state, "response_format", JSON)
        return render_response(
            data,
            fmt,
            status_code=response.status_code or default_status,
            headers=response.headers,
        )

    # ----- 资源加载 -----

    def find_model(self, db: Session, model_class: type, id: Any, *, options: Iterable[Any] = ()) -> Any:
        model = db.get(model_class, id, options=list(options))
        if model is None:
            raise NotFoundFault(f"Object not found: {id}")
        return model

    # ----- 路由注册 -----

    def _wrap_endpoint(self, endpoint: Callable[..., Any], default_status: int) -> Callable[..., Any]:
        signature = inspect.signature(endpoint)
        hints = get_type_hints(endpoint, include_extras=True)
        parameters = [param.replace(annotation=hints.get(name, param.annotation)) for name, param in signature.parameters.items()]

        request_name = _find_param(signature, hints, Request)
        inject_request = request_name is None
        if inject_request:
            request_name = "_action_request"
            _append_keyword(parameters, request_name, Request)

        response_name = _find_param(signature, hints, Response)
        inject_response = response_name is None
        if inject_response:
            response_name = "_action_response"
            _append_keyword(parameters, response_name, Response)

        def split(kwargs: dict[str, Any]) -> tuple[Request, Response]:
            request = kwargs.pop(request_name) if inject_request else kwargs[request_name]
            response = kwargs.pop(response_name) if inject_response else kwargs[response_name]
            return request, response

        if inspect.iscoroutinefunction(endpoint):

            async def handler(*args: Any, **kwargs: Any) -> Response:
                request, response = split(kwargs)
                result = await endpoint(*args, **kwargs)
                return self.after_action(request, response, result, default_status)

        else:

            def handler(*args: Any, **kwargs: Any) -> Response:
                request, response = split(kwargs)
                result = endpoint(*args, **kwargs)
                return self.after_action(request, response, result, default_status)

        # 不设置 __wrapped__，路由始终按改写后的签名注入参数。
        for attr in ("__module__", "__name__", "__qualname__", "__doc__"):
            setattr(handler, attr, getattr(endpoint, attr, None))
        handler.__signature__ = signature.replace(parameters=parameters, return_annotation=inspect.Signature.empty)
        return handler

    def action(
        self,
        action_id: str,
        path: str = "",
        *,
        methods: Iterable[str] | None = None,
        status_code: int | None = None,
        **route_kwargs: Any,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """注册动作；允许 GET 的动作同时响应 HEAD。"""
        verbs = [item.upper() for item in (methods or self.verbs().get(action_id) or ["GET"])]

        def decorator(endpoint: Callable[..., Any]) -> Callable[..., Any]:
            handler = self._wrap_endpoint(endpoint, status_code or 200)
            dependencies = [Depends(self.before_action(action_id)), *route_kwargs.pop("dependencies", [])]
            route_kwargs.setdefault("response_model", None)
            self.router.add_api_route(
                path,
                handler,
                methods=verbs,
                status_code=status_code,
                dependencies=dependencies,
                name=action_id,
                **route_kwargs,
            )
            if "GET" in verbs and "HEAD" not in verbs:
                self.router.add_api_route(
                    path,
                    handler,
                    methods=["HEAD"],
                    dependencies=dependencies,
                    name=f"{action_id}.head",
                    response_model=None,
                    include_in_schema=False,
                )
            return endpoint

        return decorator

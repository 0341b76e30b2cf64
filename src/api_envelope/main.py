"""FastAPI 应用入口点。"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from api_envelope.api.router import api_router
from api_envelope.core.config import Settings, get_settings
from api_envelope.core.logging import setup_logging
from api_envelope.db.session import init_db
from api_envelope.exceptions import ErrorHandler, register_exception_handlers
from api_envelope.middlewares import register_middlewares

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.settings.db_auto_create:
        init_db()
    yield


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """创建并配置 FastAPI 应用实例。"""
    app_settings = app_settings or settings
    setup_logging(app_settings.log_level)

    # 调试诊断由异常渲染器输出，框架本身不开启调试页。
    app = FastAPI(
        title=app_settings.app_name,
        version="1.0.0",
        lifespan=lifespan,
        description=(
            "REST 响应包裹协议示例接口。\n\n"
            "所有接口统一返回：`{status, error, data}`，`status == 0` 表示成功。\n"
            "集合接口支持 `page` / `per-page` / `fields` / `expand` 参数；\n"
            "通过 `_format=xml` 或 `Accept: application/xml` 切换 XML 输出。"
        ),
        openapi_tags=[
            {"name": "health", "description": "服务存活与就绪探针。"},
            {"name": "auth", "description": "注册、令牌登录与会话登录。"},
            {"name": "articles", "description": "文章增删改查（会话模式，作者本人可修改）。"},
        ],
    )
    app.state.settings = app_settings

    register_middlewares(app, app_settings)
    register_exception_handlers(app, ErrorHandler(debug=app_settings.app_debug))
    app.include_router(api_router, prefix=app_settings.api_prefix)
    return app


app = create_app()

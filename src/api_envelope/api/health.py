"""健康检查接口。"""

from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from api_envelope.controller import RestController
from api_envelope.db.session import get_db
from api_envelope.schemas.common import Envelope, ErrorEnvelope, HealthStatusData

controller = RestController(prefix="/health", tags=["health"], optional={"live", "ready"}, rate_limiter=None)
router = controller.router


@controller.action(
    "live",
    "/live",
    summary="存活探针",
    description="用于容器编排系统检测服务进程是否存活。",
    response_model=Envelope[HealthStatusData],
    responses={500: {"model": ErrorEnvelope}},
)
def live():
    """仅表示进程存活，不校验外部依赖。"""
    return controller.success({"status": "ok"})


@controller.action(
    "ready",
    "/ready",
    summary="就绪探针",
    description="通过数据库连通性检测服务是否具备对外提供能力。",
    response_model=Envelope[HealthStatusData],
    responses={500: {"model": ErrorEnvelope}},
)
def ready(db: Session = Depends(get_db)):
    """执行轻量数据库探活语句验证数据库可用。"""
    db.execute(text("select 1"))
    return controller.success({"status": "ready"})

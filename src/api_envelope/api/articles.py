"""文章接口。

默认会话模式：列表、详情、摘要流对访客开放，写操作需登录；
修改与删除仅限作者本人（``check_access``）。
"""

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from fastapi import Body, Depends, Request
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from api_envelope.controller import ActionContext, RestController
from api_envelope.core.security import AuthenticatedPrincipal
from api_envelope.db.session import get_db
from api_envelope.dependencies import get_action_context, get_current_user
from api_envelope.models.article import Article
from api_envelope.models.forms import ArticleForm
from api_envelope.models.user import User
from api_envelope.schemas.article import ArticleData, ArticleSummary
from api_envelope.schemas.common import Envelope, ErrorEnvelope, PagedItems, PagedList
from api_envelope.services.data_providers import QueryDataProvider
from api_envelope.services.pagination import Pagination
from api_envelope.utils.response import VALIDATION_FAILED_MESSAGE, VALIDATION_FAILED_STATUS

OWNER_ACTIONS = frozenset({"update", "delete"})


class ArticleController(RestController):
    id_param = "article_id"

    def verbs(self) -> dict[str, list[str]]:
        return {
            "index": ["GET"],
            "feed": ["GET"],
            "view": ["GET"],
            "create": ["POST"],
            "update": ["PUT", "PATCH"],
            "delete": ["DELETE"],
        }

    def check_access(
        self,
        action: str,
        id: Any = None,
        model: Any = None,
        params: Mapping[str, Any] | None = None,
        *,
        principal: AuthenticatedPrincipal | None = None,
    ) -> bool:
        if action not in OWNER_ACTIONS or model is None:
            return True
        return principal is not None and str(model.author_id) == principal.subject


controller = ArticleController(prefix="/articles", tags=["articles"], optional={"index", "feed", "view"})
router = controller.router


@controller.action(
    "index",
    "",
    summary="文章列表",
    description="分页返回文章，支持 page / per-page / fields / expand 参数，分页信息同时写入响应头。",
    response_model=Envelope[PagedItems[ArticleData]],
)
def index(request: Request, db: Session = Depends(get_db)):
    """文章列表。"""
    query = select(Article).order_by(Article.created_at.desc(), Article.id)
    status = request.query_params.get("status")
    if status:
        query = query.where(Article.status == status)
    provider = QueryDataProvider(db, query, pagination=Pagination(request=request))
    return controller.success(provider)


@controller.action(
    "feed",
    "/feed",
    summary="文章摘要流",
    description="仅返回文章标题的分页摘要。",
    response_model=Envelope[PagedList[ArticleSummary]],
)
def feed(request: Request, db: Session = Depends(get_db)):
    """文章摘要流。"""
    total = db.scalar(select(func.count()).select_from(Article)) or 0
    pagination = Pagination(request=request, total_count=total)
    rows = db.execute(
        select(Article.id, Article.title)
        .order_by(Article.created_at.desc(), Article.id)
        .offset(pagination.offset)
        .limit(pagination.limit)
    ).all()
    return controller.pagination(pagination, [{"id": row.id, "title": row.title} for row in rows])


@controller.action(
    "view",
    "/{article_id}",
    summary="文章详情",
    description="返回文章详情，作者信息已预加载。",
    response_model=Envelope[ArticleData],
    responses={404: {"model": ErrorEnvelope}},
)
def view(article_id: UUID, context: ActionContext = Depends(get_action_context), db: Session = Depends(get_db)):
    """文章详情。"""
    article = controller.find_model(db, Article, article_id, options=[selectinload(Article.author)])
    context.ensure_access(id=article_id, model=article)
    return controller.success(article)


@controller.action(
    "create",
    "",
    status_code=201,
    summary="创建文章",
    description="以当前登录用户为作者创建文章。",
    response_model=Envelope[ArticleData],
    responses={401: {"model": ErrorEnvelope}, 422: {"model": ErrorEnvelope}},
)
def create(
    payload: dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """创建文章。"""
    form = ArticleForm()
    form.load(payload)
    if not form.validate():
        return controller.fail(VALIDATION_FAILED_STATUS, VALIDATION_FAILED_MESSAGE, form)

    article = Article(title=form.title, body=form.body, status=form.status, author_id=user.id)
    db.add(article)
    db.commit()
    db.refresh(article)
    return controller.success(article)


@controller.action(
    "update",
    "/{article_id}",
    summary="修改文章",
    description="仅作者本人可修改。",
    response_model=Envelope[ArticleData],
    responses={403: {"model": ErrorEnvelope}, 404: {"model": ErrorEnvelope}, 422: {"model": ErrorEnvelope}},
)
def update(
    article_id: UUID,
    payload: dict[str, Any] = Body(...),
    context: ActionContext = Depends(get_action_context),
    db: Session = Depends(get_db),
):
    """修改文章。"""
    article = controller.find_model(db, Article, article_id)
    context.ensure_access(id=article_id, model=article)

    form = ArticleForm(title=article.title, body=article.body, status=article.status)
    form.load(payload)
    if not form.validate():
        return controller.fail(VALIDATION_FAILED_STATUS, VALIDATION_FAILED_MESSAGE, form)

    article.title = form.title
    article.body = form.body
    article.status = form.status
    db.commit()
    db.refresh(article)
    return controller.success(article)


@controller.action(
    "delete",
    "/{article_id}",
    summary="删除文章",
    description="仅作者本人可删除。",
    response_model=Envelope[None],
    responses={403: {"model": ErrorEnvelope}, 404: {"model": ErrorEnvelope}},
)
def delete(
    article_id: UUID,
    context: ActionContext = Depends(get_action_context),
    db: Session = Depends(get_db),
):
    """删除文章。"""
    article = controller.find_model(db, Article, article_id)
    context.ensure_access(id=article_id, model=article)
    db.delete(article)
    db.commit()
    return controller.success()

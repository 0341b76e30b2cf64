from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from starlette.requests import Request
from starlette.responses import Response

from api_envelope.core.config import Settings, get_settings
from api_envelope.db.session import build_engine, build_session_factory, get_db, init_db
from api_envelope.services.rate_limit import get_default_rate_limiter

JWT_SECRET = "unit-test-secret-key-at-least-32-bytes"


def build_request(method: str = "GET", path: str = "/items", query: str = "", headers: dict[str, str] | None = None) -> Request:
    """构造最小可用的请求对象。"""
    raw_headers = [(b"host", b"testserver")]
    for key, value in (headers or {}).items():
        raw_headers.append((key.lower().encode("latin-1"), value.encode("latin-1")))
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 50000),
        "path": path,
        "root_path": "",
        "query_string": query.encode("latin-1"),
        "headers": raw_headers,
    }
    return Request(scope)


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("AE_AUTH_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("AE_AUTH_JWT_ALGORITHMS", "HS256")
    monkeypatch.setenv("AE_AUTH_PASSWORD_HASH_ITERATIONS", "1000")
    monkeypatch.setenv("AE_RATE_LIMIT_ENABLED", "false")
    monkeypatch.delenv("AE_AUTH_JWT_ISSUER", raising=False)
    monkeypatch.delenv("AE_AUTH_JWT_AUDIENCE", raising=False)
    get_settings.cache_clear()
    get_default_rate_limiter.cache_clear()
    yield
    get_settings.cache_clear()
    get_default_rate_limiter.cache_clear()


@pytest.fixture
def make_request() -> Callable[..., Request]:
    return build_request


@pytest.fixture
def make_response() -> Callable[[], Response]:
    return Response


@pytest.fixture
def session_factory() -> sessionmaker:
    engine = build_engine("sqlite+pysqlite://", poolclass=StaticPool)
    init_db(engine)
    return build_session_factory(engine)


@pytest.fixture
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def api_client(session_factory: sessionmaker) -> Generator[TestClient, None, None]:
    from api_envelope.main import create_app

    app = create_app(Settings(db_auto_create=False))

    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()

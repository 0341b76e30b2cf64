from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient
from sqlalchemy.exc import NoResultFound

from api_envelope.controller import ActionContext, RestController, get_action_context
from api_envelope.core.errors import MethodNotAllowedFault, NotFoundFault, ValidationFault
from api_envelope.exceptions import ErrorHandler, register_exception_handlers


def _build_client(handler: ErrorHandler) -> TestClient:
    app = FastAPI()
    register_exception_handlers(app, handler)

    @app.get("/crash")
    def crash():
        raise RuntimeError("db password is hunter2")

    @app.get("/missing")
    def missing():
        raise NotFoundFault("Object not found: 42")

    @app.get("/lookup")
    def lookup():
        raise NoResultFound("No row was found")

    @app.get("/teapot")
    def teapot():
        raise HTTPException(status_code=418, detail="short and stout")

    @app.get("/closed")
    def closed():
        raise HTTPException(status_code=499, detail="client closed request")

    @app.get("/invalid")
    def invalid():
        raise ValidationFault(data=[{"field": "title", "message": "Title cannot be blank."}])

    @app.get("/typed/{item_id}")
    def typed(item_id: int):
        return {"item_id": item_id}

    controller = RestController(prefix="/api", optional={"boom"}, rate_limiter=None)

    @controller.action("boom", "/boom")
    def boom():
        raise ValueError("exploded inside an action")

    app.include_router(controller.router)
    return TestClient(app, raise_server_exceptions=False)


def test_unhandled_exception_is_sanitized_outside_debug():
    client = _build_client(ErrorHandler())

    response = client.get("/crash")

    assert response.status_code == 500
    assert response.json() == {"status": 500, "error": "An internal server error occurred.", "data": None}
    assert "hunter2" not in response.text
    assert "Traceback" not in response.text


def test_unhandled_exception_in_action_is_sanitized():
    client = _build_client(ErrorHandler())

    response = client.get("/api/boom")

    assert response.status_code == 500
    assert response.json()["status"] == 500
    assert "exploded" not in response.text


def test_debug_mode_includes_diagnostics():
    client = _build_client(ErrorHandler(debug=True))

    body = client.get("/crash").json()

    assert body["status"] == 500
    assert body["error"] == "db password is hunter2"
    assert body["data"]["type"] == "builtins.RuntimeError"
    assert body["data"]["line"] > 0
    assert body["data"]["file"].endswith("test_error_handler.py")
    assert body["data"]["stack-trace"]


def test_user_faults_keep_status_and_message():
    client = _build_client(ErrorHandler())

    missing = client.get("/missing")
    assert missing.status_code == 404
    assert missing.json() == {"status": 404, "error": "Object not found: 42", "data": None}

    teapot = client.get("/teapot")
    assert teapot.status_code == 418
    assert teapot.json()["error"] == "short and stout"

    lookup = client.get("/lookup")
    assert lookup.status_code == 404
    assert lookup.json()["error"] == "Object not found."


def test_validation_fault_carries_field_errors():
    client = _build_client(ErrorHandler())

    response = client.get("/invalid")

    assert response.status_code == 422
    assert response.json() == {
        "status": 422,
        "error": "Data Validation Failed.",
        "data": [{"field": "title", "message": "Title cannot be blank."}],
    }


def test_request_validation_error_is_normalized():
    client = _build_client(ErrorHandler())

    response = client.get("/typed/abc")

    assert response.status_code == 422
    body = response.json()
    assert body["status"] == 422
    assert body["error"] == "Data Validation Failed."
    assert body["data"][0]["field"] == "item_id"


def test_unknown_route_is_enveloped():
    client = _build_client(ErrorHandler())

    response = client.get("/nowhere")

    assert response.status_code == 404
    assert response.json() == {"status": 404, "error": "Not Found", "data": None}


def test_html_page_for_browsers_hides_trace_outside_debug():
    client = _build_client(ErrorHandler())

    response = client.get("/crash", headers={"Accept": "text/html,application/xhtml+xml,*/*;q=0.8"})

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("text/html")
    assert "<html" in response.text
    assert "An internal server error occurred." in response.text
    assert "hunter2" not in response.text


def test_html_page_in_debug_shows_escaped_trace():
    client = _build_client(ErrorHandler(debug=True))

    response = client.get("/crash", headers={"Accept": "text/html"})

    assert "Traceback" in response.text
    assert "RuntimeError" in response.text


def test_ajax_html_request_gets_preformatted_string():
    client = _build_client(ErrorHandler())

    response = client.get("/missing", headers={"Accept": "text/html", "X-Requested-With": "XMLHttpRequest"})

    assert response.status_code == 404
    assert response.text == "<pre>Not Found: Object not found: 42</pre>"


def test_raw_format_returns_plain_string():
    client = _build_client(ErrorHandler())

    response = client.get("/missing", headers={"Accept": "text/plain"})

    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "Not Found: Object not found: 42"


def test_xml_clients_receive_xml_envelope():
    client = _build_client(ErrorHandler())

    response = client.get("/missing", headers={"Accept": "application/xml"})

    assert response.status_code == 404
    assert response.headers["content-type"].startswith("application/xml")
    assert "<status>404</status>" in response.text
    assert "<error>Object not found: 42</error>" in response.text


def test_error_action_overrides_rendering():
    async def error_action(request, exc):
        return {"handled": type(exc).__name__}

    client = _build_client(ErrorHandler(error_action=error_action))

    response = client.get("/missing")

    assert response.status_code == 404
    assert response.json() == {"handled": "NotFoundFault"}


def test_error_action_response_is_returned_verbatim():
    def error_action(request, exc):
        return JSONResponse({"custom": True}, status_code=599)

    client = _build_client(ErrorHandler(error_action=error_action))

    response = client.get("/crash")

    assert response.status_code == 599
    assert response.json() == {"custom": True}


def test_fault_headers_are_preserved():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/legacy")
    def legacy():
        raise MethodNotAllowedFault(headers={"Allow": "POST"})

    response = TestClient(app).get("/legacy")

    assert response.status_code == 405
    assert response.headers["allow"] == "POST"
    assert response.json() == {"status": 405, "error": "Method Not Allowed.", "data": None}


def test_non_standard_status_renders_in_every_format():
    client = _build_client(ErrorHandler())

    page = client.get("/closed", headers={"Accept": "text/html"})
    assert page.status_code == 499
    assert page.headers["content-type"].startswith("text/html")
    assert "client closed request" in page.text

    raw = client.get("/closed", headers={"Accept": "text/plain"})
    assert raw.status_code == 499
    assert raw.text == "client closed request: client closed request"

    body = client.get("/closed").json()
    assert body == {"status": 499, "error": "client closed request", "data": None}


def test_non_standard_status_in_debug_mode():
    client = _build_client(ErrorHandler(debug=True))

    response = client.get("/closed")

    assert response.status_code == 499
    body = response.json()
    assert body["status"] == 499
    assert body["error"] == "client closed request"
    assert body["data"]["name"] == "client closed request"
    assert body["data"]["type"] == "fastapi.exceptions.HTTPException"


def test_action_context_outside_actions_uses_generic_message():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/plain")
    def plain(context: ActionContext = Depends(get_action_context)):
        return {"action": context.action}

    response = TestClient(app).get("/plain")

    assert response.status_code == 500
    assert response.json() == {"status": 500, "error": "An internal server error occurred.", "data": None}

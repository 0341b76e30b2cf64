import pytest

from api_envelope.core.errors import NotAcceptableFault
from api_envelope.services.negotiation import ContentNegotiator, detect_format, parse_accept


def test_parse_accept_orders_by_quality():
    header = "text/html;q=0.5, application/xml, application/json;q=0.9, image/png;q=0"

    assert parse_accept(header) == ["application/xml", "application/json", "text/html"]
    assert parse_accept(None) == []


def test_format_query_param_wins(make_request):
    negotiator = ContentNegotiator()
    request = make_request(query="_format=xml", headers={"Accept": "application/json"})

    assert negotiator.negotiate(request) == "xml"


def test_unknown_format_param_is_not_acceptable(make_request):
    with pytest.raises(NotAcceptableFault) as exc:
        ContentNegotiator().negotiate(make_request(query="_format=yaml"))

    assert exc.value.status_code == 406


def test_accept_header_and_wildcards(make_request):
    negotiator = ContentNegotiator()

    assert negotiator.negotiate(make_request()) == "json"
    assert negotiator.negotiate(make_request(headers={"Accept": "application/xml"})) == "xml"
    assert negotiator.negotiate(make_request(headers={"Accept": "*/*"})) == "json"
    assert negotiator.negotiate(make_request(headers={"Accept": "text/html, application/*"})) == "json"


def test_unsupported_accept_is_not_acceptable(make_request):
    with pytest.raises(NotAcceptableFault):
        ContentNegotiator().negotiate(make_request(headers={"Accept": "text/csv"}))


def test_detect_format_prefers_negotiated_state(make_request):
    request = make_request(headers={"Accept": "text/html"})
    assert detect_format(request) == "html"

    request.state.response_format = "xml"
    assert detect_format(request) == "xml"

    assert detect_format(make_request(headers={"Accept": "text/plain"})) == "raw"
    assert detect_format(make_request()) == "json"

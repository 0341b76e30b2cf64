import pytest

from api_envelope.core.errors import RateLimitFault
from api_envelope.services.rate_limit import RateLimiter, caller_identity, get_default_rate_limiter


def test_caller_identity_falls_back_to_client_address(make_request):
    assert caller_identity(make_request()) == "ip:127.0.0.1"
    assert caller_identity(make_request(headers={"Authorization": "Bearer broken"})) == "ip:127.0.0.1"


def test_limiter_sets_headers_and_rejects_when_exhausted(make_request, make_response):
    limiter = RateLimiter("2/minute")
    request = make_request()

    first = make_response()
    limiter.check(request, first)
    assert first.headers["X-Rate-Limit-Limit"] == "2"
    assert first.headers["X-Rate-Limit-Remaining"] == "1"

    limiter.check(request, make_response())

    with pytest.raises(RateLimitFault) as exc:
        limiter.check(request, make_response())
    assert exc.value.status_code == 429
    assert exc.value.headers["X-Rate-Limit-Remaining"] == "0"


def test_limiter_counts_callers_separately(make_request):
    limiter = RateLimiter("1/minute", key_func=lambda request: request.headers.get("x-caller", "anon"))

    limiter.check(make_request(headers={"X-Caller": "a"}))
    limiter.check(make_request(headers={"X-Caller": "b"}))
    with pytest.raises(RateLimitFault):
        limiter.check(make_request(headers={"X-Caller": "a"}))


def test_limiter_can_hide_headers(make_request, make_response):
    limiter = RateLimiter("1/minute", enable_headers=False)
    response = make_response()

    limiter.check(make_request(), response)

    assert "X-Rate-Limit-Limit" not in response.headers
    with pytest.raises(RateLimitFault) as exc:
        limiter.check(make_request())
    assert exc.value.headers is None


def test_default_limiter_follows_settings(monkeypatch):
    assert get_default_rate_limiter() is None

    monkeypatch.setenv("AE_RATE_LIMIT_ENABLED", "true")
    monkeypatch.setenv("AE_RATE_LIMIT_DEFAULT", "5/second")
    from api_envelope.core.config import get_settings

    get_settings.cache_clear()
    get_default_rate_limiter.cache_clear()

    limiter = get_default_rate_limiter()
    assert limiter is not None
    assert limiter.item.amount == 5

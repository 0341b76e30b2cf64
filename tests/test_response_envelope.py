import pytest

from api_envelope.services.pagination import Pagination
from api_envelope.utils.response import fail, page_meta, pagination, success


def test_success_envelope_has_zero_status_and_empty_error():
    assert success({"a": 1}) == {"status": 0, "error": "", "data": {"a": 1}}
    assert success() == {"status": 0, "error": "", "data": None}


def test_fail_envelope_defaults_data_to_none():
    assert fail(404, "not found") == {"status": 404, "error": "not found", "data": None}
    assert fail(1001, "bad", [1, 2]) == {"status": 1001, "error": "bad", "data": [1, 2]}


@pytest.mark.parametrize(("status", "error"), [(0, "boom"), (500, "")])
def test_fail_rejects_success_shaped_arguments(status, error):
    with pytest.raises(ValueError):
        fail(status, error)


def test_pagination_envelope_reports_one_based_page():
    source = Pagination(total_count=45, page=2, page_size=20)

    result = pagination(source, ["x", "y"])

    assert result == {
        "status": 0,
        "error": "",
        "data": {
            "list": ["x", "y"],
            "_meta": {"totalCount": 45, "pageCount": 3, "currentPage": 3, "perPage": 20},
        },
    }


def test_page_meta_with_empty_source():
    source = Pagination(total_count=0, page_size=10)

    assert page_meta(source) == {"totalCount": 0, "pageCount": 0, "currentPage": 1, "perPage": 10}

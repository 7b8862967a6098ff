import logging

import pytest

from gemini_proxy.common.errors import (
    ErrorKind,
    ProxyError,
    api_error,
    as_proxy_error,
    internal_error,
    invalid_request,
    upstream_error,
)
from gemini_proxy.services.error_translator import translate_error


def test_api_error_passes_through_with_its_status():
    status, error = translate_error(api_error(404, "The model does not exist", "invalid_request_error"))

    assert status == 404
    assert error.model_dump() == {
        "code": 404,
        "message": "The model does not exist",
        "param": None,
        "type": "invalid_request_error",
    }


@pytest.mark.parametrize(
    "backend_message",
    ["Resource has been exhausted (e.g. check quota).", "RESOURCE_EXHAUSTED", ""],
)
def test_rate_limit_is_normalized(backend_message):
    status, error = translate_error(upstream_error(429, backend_message))

    assert status == 429
    assert error.code == 429
    assert error.type == "rate_limit_error"
    assert error.message == "Rate limit exceeded"


def test_other_upstream_errors_keep_status_and_message():
    status, error = translate_error(upstream_error(400, "Invalid JSON payload received."))

    assert status == 400
    assert error.type == "server_error"
    assert error.message == "Invalid JSON payload received."


def test_invalid_request():
    status, error = translate_error(invalid_request("messages[0]: unsupported role 'x'"))

    assert status == 400
    assert error.type == "invalid_request_error"
    assert error.message == "messages[0]: unsupported role 'x'"


def test_internal_error():
    status, error = translate_error(internal_error("boom"))

    assert status == 500
    assert error.type == "server_error"


def test_every_kind_is_translated():
    for kind in ErrorKind:
        status, error = translate_error(ProxyError(kind, "msg", status_code=418, error_type="x"))
        assert status >= 400
        assert error.code == status


def test_as_proxy_error_keeps_proxy_errors_and_wraps_others():
    original = invalid_request("bad")

    assert as_proxy_error(original) is original
    wrapped = as_proxy_error(ValueError("nope"))
    assert wrapped.kind == ErrorKind.INTERNAL
    assert wrapped.message == "nope"


def test_translation_logs_untranslated_error(caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger("gemini_proxy"), "propagate", True)
    with caplog.at_level("WARNING", logger="gemini_proxy.services.error_translator"):
        translate_error(upstream_error(503, "overloaded"))

    assert "overloaded" in caplog.text

import pytest

from gemini_proxy.api.deps import extract_bearer_token
from gemini_proxy.common.errors import ErrorKind, ProxyError


@pytest.mark.parametrize(
    "header, token",
    [
        ("Bearer sk-123", "sk-123"),
        ("bearer sk-123", "sk-123"),
        ("  Bearer   sk-123  ", "sk-123"),
    ],
)
def test_extract_bearer_token(header, token):
    assert extract_bearer_token(header) == token


@pytest.mark.parametrize("header", [None, "", "Bearer", "Basic abc", "Bearer a b", "sk-123"])
def test_malformed_header_is_invalid_request(header):
    with pytest.raises(ProxyError) as exc_info:
        extract_bearer_token(header)

    assert exc_info.value.kind == ErrorKind.INVALID_REQUEST

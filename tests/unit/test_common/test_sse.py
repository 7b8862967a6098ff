from gemini_proxy.common.sse import SSEDecoder, encode_sse_data, encode_sse_done


def test_decoder_splits_events():
    decoder = SSEDecoder()

    assert decoder.feed(b'data: {"a":1}\n\ndata: {"b":2}\n\n') == ['{"a":1}', '{"b":2}']


def test_decoder_buffers_partial_events():
    decoder = SSEDecoder()

    assert decoder.feed(b'data: {"a"') == []
    assert decoder.feed(b":1}\n") == []
    assert decoder.feed(b"\n") == ['{"a":1}']


def test_decoder_handles_crlf_and_ignores_other_fields():
    decoder = SSEDecoder()

    assert decoder.feed(b"event: message\r\nid: 1\r\ndata: x\r\n\r\n: comment\r\n\r\n") == ["x"]


def test_decoder_flush_returns_unterminated_event():
    decoder = SSEDecoder()
    decoder.feed(b"data: tail")

    assert decoder.flush() == ["tail"]
    assert decoder.flush() == []


def test_encoding():
    assert encode_sse_data('{"x":1}') == b'data: {"x":1}\n\n'
    assert encode_sse_done() == b"data: [DONE]\n\n"

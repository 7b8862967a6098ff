import asyncio
import json

import pytest

from gemini_proxy.common.errors import ErrorKind, ProxyError, upstream_error
from gemini_proxy.services.stream_coordinator import StreamCoordinator


class _RecordingSource:
    """Async iterator over canned results that records how far it was read"""

    def __init__(self, results, error=None, block_after=None):
        self._results = list(results)
        self._error = error
        self._block_after = block_after
        self.read = 0
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._block_after is not None and self.read >= self._block_after:
            await asyncio.Event().wait()
        if self.read < len(self._results):
            item = self._results[self.read]
            self.read += 1
            return item
        if self._error is not None:
            raise self._error
        raise StopAsyncIteration

    async def aclose(self):
        self.closed = True


def _convert(result, first):
    return {"value": result["value"], "first": first}


async def _drain(coordinator: StreamCoordinator) -> list[bytes]:
    first = await coordinator.first()
    return [frame async for frame in coordinator.events(first)]


@pytest.mark.asyncio
async def test_chunks_are_forwarded_in_order_then_done():
    source = _RecordingSource([{"value": "c1"}, {"value": "c2"}, {"value": "c3"}])
    coordinator = StreamCoordinator(source, _convert, maxsize=2)

    frames = await _drain(coordinator)

    assert frames[-1] == b"data: [DONE]\n\n"
    payloads = [json.loads(f[len(b"data: "):]) for f in frames[:-1]]
    assert [p["value"] for p in payloads] == ["c1", "c2", "c3"]
    assert [p["first"] for p in payloads] == [True, False, False]
    assert source.closed


@pytest.mark.asyncio
async def test_trailer_is_sent_once_after_last_chunk_before_done():
    source = _RecordingSource([{"value": "c1"}, {"value": "c2"}])
    coordinator = StreamCoordinator(source, _convert, trailer=lambda: {"value": "usage", "first": None})

    frames = await _drain(coordinator)

    assert frames[-1] == b"data: [DONE]\n\n"
    payloads = [json.loads(f[len(b"data: "):]) for f in frames[:-1]]
    assert [p["value"] for p in payloads] == ["c1", "c2", "usage"]


@pytest.mark.asyncio
async def test_trailer_is_skipped_when_stream_fails():
    calls = []

    def trailer():
        calls.append(1)
        return {"value": "usage"}

    source = _RecordingSource([{"value": "c1"}], error=upstream_error(500, "boom"))
    coordinator = StreamCoordinator(source, _convert, trailer=trailer)

    frames = await _drain(coordinator)

    assert len(frames) == 1
    assert calls == []


@pytest.mark.asyncio
async def test_empty_stream_only_emits_done():
    coordinator = StreamCoordinator(_RecordingSource([]), _convert)

    assert await _drain(coordinator) == [b"data: [DONE]\n\n"]


@pytest.mark.asyncio
async def test_error_before_first_chunk_raises_from_first():
    error = upstream_error(429, "quota")
    coordinator = StreamCoordinator(_RecordingSource([], error=error), _convert)

    with pytest.raises(ProxyError) as exc_info:
        await coordinator.first()

    assert exc_info.value is error


@pytest.mark.asyncio
async def test_error_after_first_chunk_ends_without_done():
    source = _RecordingSource([{"value": "c1"}], error=upstream_error(500, "boom"))
    coordinator = StreamCoordinator(source, _convert)
    frames = []

    first = await coordinator.first()
    async for frame in coordinator.events(first):
        frames.append(frame)

    assert len(frames) == 1
    assert b"[DONE]" not in b"".join(frames)
    await coordinator.wait_closed()
    assert coordinator.producer_done


@pytest.mark.asyncio
async def test_unexpected_exception_is_wrapped_as_internal():
    coordinator = StreamCoordinator(_RecordingSource([], error=RuntimeError("bad")), _convert)

    with pytest.raises(ProxyError) as exc_info:
        await coordinator.first()

    assert exc_info.value.kind == ErrorKind.INTERNAL
    assert exc_info.value.message == "bad"


@pytest.mark.asyncio
async def test_slow_consumer_blocks_backend_reads():
    source = _RecordingSource([{"value": str(i)} for i in range(10)])
    coordinator = StreamCoordinator(source, _convert, maxsize=2).start()

    for _ in range(5):
        await asyncio.sleep(0)

    # Two chunks queued plus one converted chunk waiting on put()
    assert source.read == 3
    assert not coordinator.producer_done

    coordinator.cancel()
    await coordinator.wait_closed()


@pytest.mark.asyncio
async def test_cancel_stops_producer_and_closes_source():
    source = _RecordingSource([{"value": "c1"}], block_after=1)
    coordinator = StreamCoordinator(source, _convert)

    first = await coordinator.first()
    events = coordinator.events(first)
    assert await events.__anext__() == b'data: {"value": "c1", "first": true}\n\n'

    # Client went away: the response generator is closed
    await events.aclose()
    await coordinator.wait_closed()

    assert coordinator.producer_done
    assert source.closed

"""
Streaming Coordinator

Bridges a backend stream of partial results to the SSE writer through a
bounded queue. A producer task reads the backend and enqueues serialized
chunks; the HTTP layer drains the queue one event at a time.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Callable, Optional, Union

from gemini_proxy.common.errors import ProxyError, as_proxy_error
from gemini_proxy.common.sse import encode_sse_data, encode_sse_done

logger = logging.getLogger(__name__)

# Converts (backend_result, is_first) into a front-facing chunk
ChunkConverter = Callable[[dict[str, Any], bool], dict[str, Any]]
# Builds an optional last chunk once the backend stream is exhausted
TrailerBuilder = Callable[[], Optional[dict[str, Any]]]


class _EndOfStream:
    def __repr__(self) -> str:
        return "<end of stream>"


END_OF_STREAM = _EndOfStream()

QueueItem = Union[str, ProxyError, _EndOfStream]


class StreamCoordinator:
    """
    Producer/consumer bridge for one streaming request

    The queue holds at most `maxsize` serialized chunks; a slow consumer blocks
    the producer, which in turn stops reading from the backend.

    Example:
        coordinator = StreamCoordinator(source, convert, maxsize=8).start()
        first = await coordinator.first()   # raises ProxyError before any output
        return StreamingResponse(coordinator.events(first))
    """

    def __init__(
        self,
        source: AsyncIterator[dict[str, Any]],
        convert: ChunkConverter,
        maxsize: int = 8,
        trailer: Optional[TrailerBuilder] = None,
    ):
        self._source = source
        self._convert = convert
        self._trailer = trailer
        self._queue: asyncio.Queue[QueueItem] = asyncio.Queue(maxsize=maxsize)
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    @property
    def producer_done(self) -> bool:
        return self._task is not None and self._task.done()

    def start(self) -> "StreamCoordinator":
        if self._task is None:
            self._task = asyncio.create_task(self._produce())
        return self

    async def _produce(self) -> None:
        first = True
        try:
            async for result in self._source:
                chunk = self._convert(result, first)
                first = False
                await self._queue.put(json.dumps(chunk, ensure_ascii=False))
            if self._trailer is not None:
                last = self._trailer()
                if last is not None:
                    await self._queue.put(json.dumps(last, ensure_ascii=False))
        except asyncio.CancelledError:
            logger.debug("Stream producer cancelled")
            raise
        except Exception as exc:
            await self._queue.put(as_proxy_error(exc))
            return
        finally:
            aclose = getattr(self._source, "aclose", None)
            if aclose is not None:
                await aclose()
        await self._queue.put(END_OF_STREAM)

    async def next_item(self) -> Optional[str]:
        """
        Wait for the next serialized chunk

        Returns:
            Optional[str]: Chunk JSON, or None once the backend stream is exhausted

        Raises:
            ProxyError: The producer failed
        """
        item = await self._queue.get()
        if isinstance(item, _EndOfStream):
            return None
        if isinstance(item, ProxyError):
            raise item
        return item

    async def first(self) -> Optional[str]:
        """Wait for the first item; cancels the producer if waiting fails."""
        self.start()
        try:
            return await self.next_item()
        except BaseException:
            self.cancel()
            raise

    async def events(self, first_item: Optional[str]) -> AsyncIterator[bytes]:
        """
        Yield SSE frames, ending with `data: [DONE]`

        An error after the first frame is logged and ends the body without
        the [DONE] marker.
        """
        item = first_item
        sent = 0
        try:
            while item is not None:
                yield encode_sse_data(item)
                sent += 1
                item = await self.next_item()
            yield encode_sse_done()
        except ProxyError as err:
            logger.error("Stream aborted after %d chunk(s): %r details=%s", sent, err, err.details)
        finally:
            self.cancel()

    def cancel(self) -> None:
        """Stop the producer; safe to call more than once."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait until the producer task has finished."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

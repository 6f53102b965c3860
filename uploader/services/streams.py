import asyncio
from collections.abc import AsyncIterator, Callable, Coroutine
from contextlib import suppress
from typing import Any

from loguru import logger

from uploader.services.errors import UploadAbandoned

Consumer = Callable[[AsyncIterator[bytes]], Coroutine[Any, Any, None]]

DEFAULT_MAX_CHUNKS = 8

_EOF = object()
_ABANDON = object()


class StreamEndpoint:
    """Writable end of a bounded channel drained by a background consumer task.

    ``write`` suspends while the buffer is full. The consumer's result is
    exposed as ``completion``; once it has finished, writes are dropped.
    """

    def __init__(self, name: str, consumer: Consumer, max_chunks: int = DEFAULT_MAX_CHUNKS) -> None:
        self.name = name
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=max_chunks)
        self._closed = False
        self._abandoned: BaseException | None = None
        self.completion: asyncio.Task[None] = asyncio.create_task(consumer(self._chunks()), name=f"endpoint:{name}")
        self.completion.add_done_callback(self._log_completion)

    async def _chunks(self) -> AsyncIterator[bytes]:
        while True:
            if self._abandoned is not None and self._queue.empty():
                raise UploadAbandoned(self.name, self._abandoned)
            item = await self._queue.get()
            if item is _ABANDON:
                raise UploadAbandoned(self.name, self._abandoned)
            if item is _EOF:
                return
            yield item

    async def _put(self, item: object) -> None:
        put = asyncio.ensure_future(self._queue.put(item))
        done, _ = await asyncio.wait({put, self.completion}, return_when=asyncio.FIRST_COMPLETED)
        if put not in done:
            put.cancel()

    async def write(self, chunk: bytes) -> None:
        if self._closed or self.completion.done():
            return
        await self._put(chunk)

    async def close(self) -> None:
        if self._closed or self.completion.done():
            return
        self._closed = True
        await self._put(_EOF)

    async def finish(self) -> None:
        await self.close()
        await self.completion

    def abandon(self, reason: BaseException) -> None:
        if self._abandoned is not None or self.completion.done():
            return
        self._closed = True
        self._abandoned = reason
        logger.info("Abandoning endpoint name={} reason={}", self.name, str(reason))
        with suppress(asyncio.QueueFull):
            self._queue.put_nowait(_ABANDON)

    async def wait_closed(self) -> None:
        await asyncio.wait({self.completion})
        if not self.completion.cancelled():
            self.completion.exception()

    def _log_completion(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            logger.warning("Endpoint cancelled name={}", self.name)
        elif task.exception() is not None:
            logger.warning("Endpoint failed name={} error={}", self.name, str(task.exception()))
        else:
            logger.info("Endpoint completed name={}", self.name)

from collections.abc import AsyncIterator

from loguru import logger

from uploader.services.errors import LimitExceeded


class SizeLimiter:
    """Counts bytes as they stream through and fails once the limit is reached.

    A running total equal to the limit is already a violation, so at most
    ``limit - 1`` bytes are ever forwarded. The chunk that crosses the limit
    is dropped whole.
    """

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.total = 0

    async def stream(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        async for chunk in chunks:
            self.total += len(chunk)
            if self.total >= self.limit:
                logger.warning("Size limit reached limit={} observed_bytes={}", self.limit, self.total)
                raise LimitExceeded(self.limit)
            yield chunk

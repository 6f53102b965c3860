import asyncio
from contextlib import aclosing
from typing import Protocol

from loguru import logger

from uploader.config import Settings
from uploader.models.upload import UploadRequest
from uploader.services.errors import ForbiddenType, UploadError
from uploader.services.fanout import FanoutUploader
from uploader.services.limiter import SizeLimiter
from uploader.services.outcome import UploadOutcome
from uploader.services.policy import ContentPolicy
from uploader.services.sink import create_sink
from uploader.services.storage import StorageBackend


class Destination(Protocol):
    @property
    def completion(self) -> asyncio.Future[None]: ...

    async def write(self, chunk: bytes) -> None: ...

    async def finish(self) -> None: ...

    def abandon(self, reason: BaseException) -> None: ...

    async def wait_closed(self) -> None: ...


class UploadPipeline:
    def __init__(self, app_settings: Settings, storage: StorageBackend) -> None:
        self.settings = app_settings
        self.storage = storage
        self.policy = ContentPolicy(app_settings.forbidden_types)

    def _create_destination(self, request: UploadRequest) -> Destination:
        if self.policy.is_image(request.content_type):
            return FanoutUploader(
                self.storage,
                request.content_type,
                request.target_name,
                max_chunks=self.settings.stream_buffer_chunks,
            )
        return create_sink(
            self.storage,
            request.content_type,
            request.target_name,
            max_chunks=self.settings.stream_buffer_chunks,
        )

    async def _stream(self, request: UploadRequest, destination: Destination) -> int:
        limiter = SizeLimiter(self.settings.size_limit)
        try:
            async with aclosing(limiter.stream(request.body)) as chunks:
                async for chunk in chunks:
                    await destination.write(chunk)
                    if destination.completion.done():
                        break
            await destination.finish()
        except BaseException as exc:
            destination.abandon(exc)
            await destination.wait_closed()
            raise
        return limiter.total

    async def upload(self, request: UploadRequest) -> None:
        outcome = UploadOutcome(request.target_name)
        logger.info(
            "Upload requested target={} content_type={}",
            request.target_name,
            request.content_type,
        )

        if self.policy.is_forbidden(request.content_type):
            outcome.fail(ForbiddenType(request.content_type))
        else:
            outcome.start_streaming()
            destination = self._create_destination(request)
            try:
                size = await self._stream(request, destination)
            except UploadError as exc:
                outcome.fail(exc)
            except Exception:
                logger.exception("Upload failed unexpectedly target={}", request.target_name)
                raise
            else:
                logger.info("Upload stored target={} size_bytes={}", request.target_name, size)
                outcome.succeed()

        if outcome.reason is not None:
            logger.warning(
                "Upload rejected target={} content_type={} error={}",
                request.target_name,
                request.content_type,
                str(outcome.reason),
            )
        await outcome.wait()

import asyncio
from collections.abc import Sequence

from loguru import logger

from uploader.models.upload import Branch, ResizePreset
from uploader.services.errors import StorageError
from uploader.services.outcome import UploadOutcome
from uploader.services.resize import RESIZE_PRESETS, variant_content_type
from uploader.services.sink import create_sink
from uploader.services.storage import StorageBackend
from uploader.services.streams import DEFAULT_MAX_CHUNKS, StreamEndpoint


class FanoutUploader:
    """Copies one image stream into a resized upload per preset.

    Every branch receives every chunk in order. A write waits until each
    branch has buffer room, so the source is pulled at the pace of the
    slowest branch. The first branch error becomes the overall result.
    """

    def __init__(
        self,
        storage: StorageBackend,
        content_type: str,
        target_name: str,
        presets: Sequence[ResizePreset] = RESIZE_PRESETS,
        max_chunks: int = DEFAULT_MAX_CHUNKS,
    ) -> None:
        self.target_name = target_name
        self.branches = [Branch.for_target(target_name, preset) for preset in presets]
        self._outcome = UploadOutcome(f"fanout:{target_name}")
        self._outcome.start_streaming()
        self._pending = len(self.branches)
        self._sinks: list[StreamEndpoint] = []
        for branch in self.branches:
            sink = create_sink(
                storage,
                variant_content_type(content_type),
                branch.key,
                preset=branch.preset,
                max_chunks=max_chunks,
            )
            sink.completion.add_done_callback(lambda task, branch=branch: self._on_branch_done(branch, task))
            self._sinks.append(sink)

    @property
    def completion(self) -> asyncio.Future[None]:
        return self._outcome.future

    def _on_branch_done(self, branch: Branch, task: asyncio.Task[None]) -> None:
        self._pending -= 1
        if task.cancelled():
            error: BaseException | None = StorageError(branch.key, "upload cancelled")
        else:
            error = task.exception()

        if error is not None:
            if self._outcome.fail(error):
                logger.warning(
                    "Fanout branch failed target={} branch={} error={}",
                    self.target_name,
                    branch.preset.label,
                    str(error),
                )
                self.abandon(error)
            return

        logger.info(
            "Fanout branch completed target={} branch={} remaining={}",
            self.target_name,
            branch.preset.label,
            self._pending,
        )
        if self._pending == 0:
            self._outcome.succeed()

    async def write(self, chunk: bytes) -> None:
        for sink in self._sinks:
            if self._outcome.done:
                return
            await sink.write(chunk)

    async def finish(self) -> None:
        for sink in self._sinks:
            await sink.close()
        await self.wait_closed()
        await self._outcome.wait()

    def abandon(self, reason: BaseException) -> None:
        for sink in self._sinks:
            sink.abandon(reason)

    async def wait_closed(self) -> None:
        for sink in self._sinks:
            await sink.wait_closed()
        self._outcome.observe()

import asyncio

from loguru import logger

from uploader.models.upload import UploadState

TERMINAL_STATES = frozenset({UploadState.SUCCEEDED, UploadState.FAILED})


class UploadOutcome:
    """Single terminal result shared by every party that can finish an upload.

    The first call to ``succeed`` or ``fail`` settles the outcome; later calls
    are logged and ignored, so branches may report in any order.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.state = UploadState.VALIDATING
        self.reason: BaseException | None = None
        self._future: asyncio.Future[None] = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def future(self) -> asyncio.Future[None]:
        return self._future

    def start_streaming(self) -> None:
        if self.state is UploadState.VALIDATING:
            self.state = UploadState.STREAMING

    def succeed(self) -> bool:
        if self.done:
            logger.debug("Outcome already settled name={} state={} ignored=success", self.name, self.state.value)
            return False
        self.state = UploadState.SUCCEEDED
        self._future.set_result(None)
        return True

    def fail(self, reason: BaseException) -> bool:
        if self.done:
            logger.warning(
                "Outcome already settled name={} state={} ignored_error={}",
                self.name,
                self.state.value,
                str(reason),
            )
            return False
        self.state = UploadState.FAILED
        self.reason = reason
        self._future.set_exception(reason)
        return True

    def observe(self) -> None:
        # Marks a stored failure as retrieved when nobody awaits the future.
        if self._future.done() and not self._future.cancelled():
            self._future.exception()

    async def wait(self) -> None:
        await asyncio.shield(self._future)

from collections.abc import AsyncIterator

from loguru import logger

from uploader.models.upload import ResizePreset
from uploader.services.resize import resize_transform
from uploader.services.storage import StorageBackend
from uploader.services.streams import DEFAULT_MAX_CHUNKS, StreamEndpoint


def create_sink(
    storage: StorageBackend,
    content_type: str,
    key: str,
    preset: ResizePreset | None = None,
    max_chunks: int = DEFAULT_MAX_CHUNKS,
) -> StreamEndpoint:
    """Return an endpoint whose bytes end up in storage under ``key``.

    With a preset the bytes are resized before they reach storage.
    """

    async def upload(chunks: AsyncIterator[bytes]) -> None:
        body = resize_transform(preset)(chunks) if preset is not None else chunks
        logger.info(
            "Sink upload started key={} content_type={} preset={}",
            key,
            content_type,
            preset.label if preset else "-",
        )
        await storage.upload(key, content_type, body)

    return StreamEndpoint(key, upload, max_chunks=max_chunks)

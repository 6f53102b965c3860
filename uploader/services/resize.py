import asyncio
import io
from collections.abc import AsyncIterator, Callable

import cairosvg
from loguru import logger
from PIL import Image, ImageOps

from uploader.models.upload import ResizePreset
from uploader.services.errors import DecodeError

SMALL = ResizePreset("small", 300, 300)
MEDIUM = ResizePreset("medium", 1024, 1024)
LARGE = ResizePreset("large", 2048, 2048)
RESIZE_PRESETS: tuple[ResizePreset, ...] = (SMALL, MEDIUM, LARGE)

OUTPUT_CHUNK_SIZE = 64 * 1024
SVG_CONTENT_TYPE = "image/svg+xml"

_SNIFF_BYTES = 1024
_IMAGE_ERRORS = (OSError, ValueError, SyntaxError)

Transform = Callable[[AsyncIterator[bytes]], AsyncIterator[bytes]]


def variant_content_type(content_type: str) -> str:
    """Content type of the resized copies; vector input is stored rasterised."""
    if content_type == SVG_CONTENT_TYPE:
        return "image/png"
    return content_type


def _is_svg(data: bytes) -> bool:
    head = data[:_SNIFF_BYTES].lstrip()
    return head.startswith(b"<") and b"<svg" in head


def _open(data: bytes) -> Image.Image:
    if _is_svg(data):
        return Image.open(io.BytesIO(cairosvg.svg2png(bytestring=data)))
    return Image.open(io.BytesIO(data))


def _render(data: bytes, preset: ResizePreset) -> bytes:
    with _open(data) as source:
        image_format = source.format
        source.load()
        # Fit inside the box, keeping aspect ratio; scales up as well as down.
        resized = ImageOps.contain(source, preset.size)
        source_size = source.size

    output = io.BytesIO()
    resized.save(output, format=image_format)
    logger.debug(
        "Image resized preset={} format={} source_size={} output_size={}",
        preset.label,
        image_format,
        source_size,
        resized.size,
    )
    return output.getvalue()


def resize_transform(preset: ResizePreset) -> Transform:
    # Decoding needs the complete image, so input is collected first; the
    # upload size limit bounds how much that can be.
    async def transform(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        data = bytearray()
        async for chunk in chunks:
            data.extend(chunk)
        try:
            encoded = await asyncio.to_thread(_render, bytes(data), preset)
        except Image.DecompressionBombError as exc:
            logger.warning("Image too large preset={} error={}", preset.label, str(exc))
            raise DecodeError("image dimensions too large") from exc
        except _IMAGE_ERRORS as exc:
            logger.warning("Image decode failed preset={} error={}", preset.label, str(exc))
            raise DecodeError("unsupported or corrupt image") from exc

        for offset in range(0, len(encoded), OUTPUT_CHUNK_SIZE):
            yield encoded[offset : offset + OUTPUT_CHUNK_SIZE]

    return transform

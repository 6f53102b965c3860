"""Stream and image builders shared by the tests."""

from __future__ import annotations

import io
import os
from collections.abc import AsyncIterator, Iterable

from PIL import Image


def make_image(image_format: str = "PNG", size: tuple[int, int] = (640, 480)) -> bytes:
    """Render a gradient image in the given format."""
    image = Image.new("RGB", size)
    pixels = [((x * 255) // size[0], (y * 255) // size[1], 128) for y in range(size[1]) for x in range(size[0])]
    image.putdata(pixels)
    output = io.BytesIO()
    image.save(output, format=image_format)
    return output.getvalue()


def make_noise_image(size: tuple[int, int] = (256, 256)) -> bytes:
    """Render a PNG of random pixels, which compresses poorly."""
    image = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    output = io.BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


def make_svg(size: tuple[int, int] = (100, 50)) -> bytes:
    """A vector image with explicit pixel dimensions."""
    width, height = size
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}">'
        f'<rect width="{width}" height="{height}" fill="red"/></svg>'
    ).encode()


def open_image(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def chunked(data: bytes, chunk_size: int = 1024) -> list[bytes]:
    return [data[offset : offset + chunk_size] for offset in range(0, len(data), chunk_size)]


async def stream_of(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


class TrackingStream:
    """Async byte source that records how many chunks were pulled from it."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks = list(chunks)
        self.pulled = 0

    def __aiter__(self) -> TrackingStream:
        return self

    async def __anext__(self) -> bytes:
        if self.pulled >= len(self._chunks):
            raise StopAsyncIteration
        chunk = self._chunks[self.pulled]
        self.pulled += 1
        return chunk

from collections.abc import Iterable

IMAGE_TYPES = frozenset(
    {
        "image/gif",
        "image/jpeg",
        "image/png",
        "image/tiff",
        "image/svg+xml",
    }
)


class ContentPolicy:
    def __init__(self, forbidden_types: Iterable[str] = ()) -> None:
        self._forbidden = frozenset(item for item in forbidden_types if item)

    def is_forbidden(self, content_type: str) -> bool:
        return content_type in self._forbidden

    def is_image(self, content_type: str) -> bool:
        return content_type in IMAGE_TYPES

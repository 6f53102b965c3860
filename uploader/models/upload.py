from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum


class UploadState(str, Enum):
    VALIDATING = "validating"
    STREAMING = "streaming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ResizePreset:
    label: str
    width: int
    height: int

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True)
class Branch:
    preset: ResizePreset
    key: str

    @classmethod
    def for_target(cls, target_name: str, preset: ResizePreset) -> "Branch":
        return cls(preset=preset, key=f"{target_name}-{preset.label}")


@dataclass
class UploadRequest:
    body: AsyncIterator[bytes]
    content_type: str
    target_name: str

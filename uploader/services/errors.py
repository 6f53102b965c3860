class UploadError(Exception):
    """Base class for failures reported back to the uploading client."""


class ForbiddenType(UploadError):
    def __init__(self, content_type: str) -> None:
        super().__init__(f"{content_type} is not allowed!")
        self.content_type = content_type


class LimitExceeded(UploadError):
    def __init__(self, limit: int) -> None:
        super().__init__("Limit exceeded")
        self.limit = limit


class DecodeError(UploadError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Unable to process image: {detail}")


class StorageError(UploadError):
    def __init__(self, key: str, detail: str) -> None:
        super().__init__(f"Storage upload failed for {key}: {detail}")
        self.key = key


class UploadAbandoned(UploadError):
    def __init__(self, key: str, reason: BaseException) -> None:
        super().__init__(f"Upload of {key} abandoned: {reason}")
        self.key = key
        self.reason = reason

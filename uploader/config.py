import re
from pathlib import Path
from typing import Literal

from pydantic import ByteSize, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_S3_PART_SIZE = 5 * 1024 * 1024

# The size limit reads KB, MB, GB, TB and PB as powers of 1024.
_DECIMAL_UNIT = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([kmgtp])b\s*$", re.IGNORECASE)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Streaming Upload Service"
    debug: bool = False
    log_level: str = "INFO"
    file_size_limit: ByteSize = Field(default="10MB", validate_default=True)
    forbidden_content_type: str = ""
    storage_backend: Literal["s3", "local"] = "s3"
    aws_access_key: str | None = None
    aws_secret_key: str | None = None
    aws_region: str | None = None
    aws_endpoint_url: str | None = None
    aws_bucket_name: str | None = None
    s3_part_size: ByteSize = Field(default="8MiB", validate_default=True)
    upload_dir: str = "tmp/uploads"
    stream_buffer_chunks: int = Field(default=8, ge=1, le=1024)

    @field_validator("file_size_limit", mode="before")
    @classmethod
    def _binary_units(cls, value: object) -> object:
        if isinstance(value, str):
            match = _DECIMAL_UNIT.match(value)
            if match:
                return f"{match.group(1)}{match.group(2).upper()}iB"
        return value

    @field_validator("s3_part_size")
    @classmethod
    def _check_part_size(cls, value: ByteSize) -> ByteSize:
        if value < MIN_S3_PART_SIZE:
            raise ValueError("s3_part_size must be at least 5MiB")
        return value

    @property
    def size_limit(self) -> int:
        return int(self.file_size_limit)

    @property
    def forbidden_types(self) -> frozenset[str]:
        return frozenset(item.strip() for item in self.forbidden_content_type.split(",") if item.strip())

    @property
    def upload_path(self) -> Path:
        path = Path(self.upload_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path


settings = Settings()

import asyncio
import os
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from uploader.config import Settings
from uploader.services.errors import StorageError


class StorageBackend(Protocol):
    async def upload(self, key: str, content_type: str, chunks: AsyncIterator[bytes]) -> None: ...


class S3Storage:
    """Streams chunks into an S3 object, one bounded part at a time.

    Bodies smaller than a single part go out with ``put_object``; anything
    larger uses a multipart upload that is aborted if either S3 or the
    incoming chunk stream fails.
    """

    def __init__(self, bucket: str, client: Any, part_size: int) -> None:
        self.bucket = bucket
        self.client = client
        self.part_size = part_size

    async def _call(self, key: str, method: str, **params: Any) -> dict[str, Any]:
        try:
            return await asyncio.to_thread(getattr(self.client, method), Bucket=self.bucket, Key=key, **params)
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 call failed method={} bucket={} key={} error={}", method, self.bucket, key, str(exc))
            raise StorageError(key, str(exc)) from exc

    async def upload(self, key: str, content_type: str, chunks: AsyncIterator[bytes]) -> None:
        buffer = bytearray()
        upload_id: str | None = None
        parts: list[dict[str, Any]] = []
        try:
            async for chunk in chunks:
                buffer.extend(chunk)
                while len(buffer) >= self.part_size:
                    if upload_id is None:
                        created = await self._call(key, "create_multipart_upload", ContentType=content_type)
                        upload_id = created["UploadId"]
                        logger.debug("Multipart upload started bucket={} key={} upload_id={}", self.bucket, key, upload_id)
                    body = bytes(buffer[: self.part_size])
                    del buffer[: self.part_size]
                    parts.append(await self._upload_part(key, upload_id, len(parts) + 1, body))

            if upload_id is None:
                await self._call(key, "put_object", Body=bytes(buffer), ContentType=content_type)
                logger.info("Object stored bucket={} key={} size_bytes={}", self.bucket, key, len(buffer))
                return

            if buffer:
                parts.append(await self._upload_part(key, upload_id, len(parts) + 1, bytes(buffer)))
            await self._call(
                key,
                "complete_multipart_upload",
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
            logger.info("Multipart upload completed bucket={} key={} parts={}", self.bucket, key, len(parts))
        except BaseException:
            if upload_id is not None:
                await self._abort(key, upload_id)
            raise

    async def _upload_part(self, key: str, upload_id: str, number: int, body: bytes) -> dict[str, Any]:
        response = await self._call(key, "upload_part", UploadId=upload_id, PartNumber=number, Body=body)
        logger.debug("Part uploaded key={} part={} size_bytes={}", key, number, len(body))
        return {"ETag": response["ETag"], "PartNumber": number}

    async def _abort(self, key: str, upload_id: str) -> None:
        try:
            await self._call(key, "abort_multipart_upload", UploadId=upload_id)
            logger.info("Multipart upload aborted bucket={} key={} upload_id={}", self.bucket, key, upload_id)
        except StorageError:
            logger.exception("Multipart abort failed bucket={} key={} upload_id={}", self.bucket, key, upload_id)


class LocalStorage:
    def __init__(self, root: Path) -> None:
        self.root = root.resolve()

    def _resolve(self, key: str) -> Path:
        destination = (self.root / key).resolve()
        if self.root not in destination.parents:
            raise StorageError(key, "key resolves outside the storage root")
        return destination

    async def upload(self, key: str, content_type: str, chunks: AsyncIterator[bytes]) -> None:
        destination = self._resolve(key)
        partial = destination.with_name(f"{destination.name}.part")
        size = 0
        try:
            with partial.open("wb") as handle:
                async for chunk in chunks:
                    handle.write(chunk)
                    size += len(chunk)
            os.replace(partial, destination)
        except OSError as exc:
            partial.unlink(missing_ok=True)
            raise StorageError(key, str(exc)) from exc
        except BaseException:
            partial.unlink(missing_ok=True)
            raise
        logger.debug(
            "File saved storage_key={} destination={} content_type={} size_bytes={}",
            key,
            str(destination),
            content_type,
            size,
        )


def build_storage(app_settings: Settings) -> StorageBackend:
    if app_settings.storage_backend == "local":
        logger.info("Using local storage root={}", app_settings.upload_dir)
        return LocalStorage(app_settings.upload_path)

    if not app_settings.aws_bucket_name:
        raise ValueError("AWS_BUCKET_NAME is required for the s3 storage backend")
    client = boto3.client(
        "s3",
        aws_access_key_id=app_settings.aws_access_key,
        aws_secret_access_key=app_settings.aws_secret_key,
        region_name=app_settings.aws_region,
        endpoint_url=app_settings.aws_endpoint_url,
    )
    logger.info("Using S3 storage bucket={} part_size={}", app_settings.aws_bucket_name, int(app_settings.s3_part_size))
    return S3Storage(app_settings.aws_bucket_name, client, int(app_settings.s3_part_size))

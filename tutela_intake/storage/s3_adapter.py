import io
from urllib.parse import quote

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from tutela_intake.storage.base import BaseObjectStore, ByteCallback, StoredObject
from tutela_intake.storage.exceptions import StorageUnavailableError


class S3ObjectStore(BaseObjectStore):
    """Stores blobs in S3 (or an S3-compatible endpoint) through boto3."""

    def __init__(
        self,
        *,
        region: str,
        endpoint_url: str | None = None,
        public_base_url: str = "",
    ) -> None:
        self._region = region
        self._endpoint_url = endpoint_url
        self._public_base_url = public_base_url.rstrip("/")
        self._client = boto3.client("s3", region_name=region, endpoint_url=endpoint_url)

    def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        on_bytes: ByteCallback | None = None,
    ) -> StoredObject:
        try:
            self._client.upload_fileobj(
                io.BytesIO(data),
                bucket,
                key,
                ExtraArgs={"ContentType": content_type},
                Callback=on_bytes,
            )
        except (BotoCoreError, ClientError, S3UploadFailedError) as exc:
            raise StorageUnavailableError(f"S3 upload failed for {bucket}/{key}: {exc}") from exc
        return StoredObject(
            bucket=bucket,
            key=key,
            url=self.public_url(bucket, key),
            size_bytes=len(data),
            content_type=content_type,
        )

    def public_url(self, bucket: str, key: str) -> str:
        quoted = quote(key)
        if self._public_base_url:
            return f"{self._public_base_url}/{bucket}/{quoted}"
        if self._endpoint_url:
            return f"{self._endpoint_url.rstrip('/')}/{bucket}/{quoted}"
        return f"https://{bucket}.s3.{self._region}.amazonaws.com/{quoted}"

    def delete(self, bucket: str, key: str) -> None:
        try:
            self._client.delete_object(Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageUnavailableError(f"S3 delete failed for {bucket}/{key}: {exc}") from exc

import contextlib
import os
from pathlib import Path

from tutela_intake.storage.base import BaseObjectStore, ByteCallback, StoredObject
from tutela_intake.storage.exceptions import StorageUnavailableError


def blob_path(root: Path, bucket: str, key: str) -> Path:
    """Build path to a blob file: {root}/{bucket}/{key}"""
    return root / bucket / key


class LocalObjectStore(BaseObjectStore):
    """Stores blobs on the local filesystem, one directory per bucket."""

    CHUNK_SIZE = 64 * 1024

    def __init__(self, root: Path, public_base_url: str = "") -> None:
        self._root = root
        self._public_base_url = public_base_url.rstrip("/")

    def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        on_bytes: ByteCallback | None = None,
    ) -> StoredObject:
        path = self._resolve_path(bucket, key)
        partial = path.with_name(path.name + ".part")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with partial.open("wb") as fh:
                for offset in range(0, len(data), self.CHUNK_SIZE):
                    chunk = data[offset : offset + self.CHUNK_SIZE]
                    fh.write(chunk)
                    if on_bytes is not None:
                        on_bytes(len(chunk))
            os.replace(partial, path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                partial.unlink(missing_ok=True)
            raise StorageUnavailableError(f"Local storage write failed for {key}: {exc}") from exc
        return StoredObject(
            bucket=bucket,
            key=key,
            url=self.public_url(bucket, key),
            size_bytes=len(data),
            content_type=content_type,
        )

    def public_url(self, bucket: str, key: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url}/{bucket}/{key}"
        return self._resolve_path(bucket, key).resolve().as_uri()

    def delete(self, bucket: str, key: str) -> None:
        try:
            self._resolve_path(bucket, key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageUnavailableError(f"Local storage delete failed for {key}: {exc}") from exc

    def _resolve_path(self, bucket: str, key: str) -> Path:
        if ".." in Path(key).parts or key.startswith("/"):
            raise ValueError(f"Invalid storage key '{key}'")
        return blob_path(self._root, bucket, key)

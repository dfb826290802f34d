import asyncio
import secrets
import time
from collections.abc import Callable
from pathlib import PurePosixPath

from tutela_intake.intake.exceptions import InvalidFileTypeError
from tutela_intake.intake.models import PendingAttachment, UploadFile, UploadHandle
from tutela_intake.logging.logger import Log
from tutela_intake.storage.base import BaseObjectStore, StoredObject

ProgressListener = Callable[[int], None]

PDF_CONTENT_TYPE = "application/pdf"


def is_pdf(mime_type: str) -> bool:
    return "pdf" in (mime_type or "").lower()


def safe_segment(value: str) -> str:
    """Make an opaque id usable as one storage key segment."""
    return value.replace("/", "_").replace("..", "_")


class UploadProgress:
    """Maps transferred bytes onto a 0-100 scale.

    Values never decrease. 100 is emitted exactly once, by complete(); after
    complete() or abandon() further byte counts are ignored.
    """

    def __init__(self, total_bytes: int, listener: ProgressListener | None = None) -> None:
        self._total_bytes = total_bytes
        self._listener = listener
        self._sent_bytes = 0
        self._percent = 0
        self._finished = False

    @property
    def percent(self) -> int:
        return self._percent

    def start(self) -> None:
        self._emit(0)

    def advance(self, byte_count: int) -> None:
        if self._finished or self._total_bytes <= 0:
            return
        self._sent_bytes += max(0, byte_count)
        percent = min(99, self._sent_bytes * 100 // self._total_bytes)
        if percent > self._percent:
            self._percent = percent
            self._emit(percent)

    def complete(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._percent = 100
        self._emit(100)

    def abandon(self) -> None:
        self._finished = True

    def _emit(self, percent: int) -> None:
        if self._listener is not None:
            self._listener(percent)


class UploadCoordinator:
    """Moves the primary PDF and attachments into the object store.

    Never touches the record store.
    """

    def __init__(
        self,
        store: BaseObjectStore,
        *,
        documents_bucket: str,
        attachments_bucket: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._documents_bucket = documents_bucket
        self._attachments_bucket = attachments_bucket
        self._clock = clock

    async def begin_upload(
        self,
        file: UploadFile,
        actor_id: str,
        on_progress: ProgressListener | None = None,
    ) -> UploadHandle:
        """Store the primary document and report progress along the way.

        Raises:
            InvalidFileTypeError: if the file is not a PDF. Nothing is written.
            StorageUnavailableError: if the store fails. Start over to retry.
        """
        if not is_pdf(file.mime_type):
            raise InvalidFileTypeError(
                f"Only PDF files are allowed, got '{file.mime_type or 'unknown'}' for {file.name}"
            )

        key = self.document_key(actor_id)
        progress = UploadProgress(file.size_bytes, on_progress)
        progress.start()
        Log.info(f"Uploading {file.name} ({file.size_bytes} bytes) to {key}")

        stored = await self._put(
            self._documents_bucket, key, file.content, PDF_CONTENT_TYPE, progress
        )
        progress.complete()
        Log.info(f"Uploaded {file.name} to {stored.url}")
        return UploadHandle(
            storage_key=key,
            blob_url=stored.url,
            file_name=file.name,
            size_bytes=stored.size_bytes,
        )

    async def upload_attachment(
        self,
        attachment: PendingAttachment,
        actor_id: str,
        record_id: int,
    ) -> StoredObject:
        """Store one attachment under its parent record's prefix.

        Raises:
            StorageUnavailableError: if the store fails.
        """
        key = self.attachment_key(actor_id, record_id, attachment.display_name)
        content_type = attachment.mime_type or "application/octet-stream"
        stored = await self._put(
            self._attachments_bucket,
            key,
            attachment.content,
            content_type,
            UploadProgress(attachment.size_bytes),
        )
        Log.info(f"Uploaded attachment {attachment.display_name} to {key}")
        return stored

    def document_key(self, actor_id: str) -> str:
        return f"{safe_segment(actor_id)}/{self._unique_name()}.pdf"

    def attachment_key(self, actor_id: str, record_id: int, display_name: str) -> str:
        suffix = PurePosixPath(display_name.replace("\\", "/")).suffix.lower()
        return f"{safe_segment(actor_id)}/{record_id}/{self._unique_name()}{suffix}"

    async def _put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        progress: UploadProgress,
    ) -> StoredObject:
        loop = asyncio.get_running_loop()

        def on_bytes(byte_count: int) -> None:
            loop.call_soon_threadsafe(progress.advance, byte_count)

        try:
            return await asyncio.to_thread(
                self._store.put, bucket, key, data, content_type, on_bytes
            )
        except BaseException:
            progress.abandon()
            raise

    def _unique_name(self) -> str:
        return f"{int(self._clock() * 1000)}-{secrets.token_hex(4)}"

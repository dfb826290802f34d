import re

import pytest

from doubles import InMemoryObjectStore
from tutela_intake.intake.exceptions import InvalidFileTypeError
from tutela_intake.intake.models import PendingAttachment, UploadFile
from tutela_intake.intake.upload import UploadCoordinator, UploadProgress, is_pdf, safe_segment
from tutela_intake.storage.exceptions import StorageUnavailableError


class TestUploadProgress:
    def test_never_exceeds_99_before_complete(self) -> None:
        seen: list[int] = []
        progress = UploadProgress(100, seen.append)

        progress.start()
        progress.advance(60)
        progress.advance(60)
        progress.complete()
        progress.complete()

        assert seen == [0, 60, 99, 100]

    def test_ignores_bytes_after_abandon(self) -> None:
        seen: list[int] = []
        progress = UploadProgress(100, seen.append)

        progress.start()
        progress.advance(10)
        progress.abandon()
        progress.advance(50)

        assert seen == [0, 10]


class TestHelpers:
    @pytest.mark.parametrize(
        ("mime_type", "expected"),
        [
            ("application/pdf", True),
            ("application/x-pdf", True),
            ("image/png", False),
            ("", False),
        ],
    )
    def test_is_pdf(self, mime_type: str, expected: bool) -> None:
        assert is_pdf(mime_type) is expected

    def test_safe_segment_removes_separators(self) -> None:
        assert safe_segment("../x/y") == "__x_y"


class TestUploadCoordinator:
    async def test_progress_is_monotone_and_ends_at_100_once(
        self, uploader: UploadCoordinator, pdf_file: UploadFile
    ) -> None:
        seen: list[int] = []

        await uploader.begin_upload(pdf_file, "actor-1", seen.append)

        assert seen[0] == 0
        assert seen[-1] == 100
        assert seen == sorted(seen)
        assert seen.count(100) == 1
        assert len(seen) > 2

    async def test_stores_document_under_actor_prefix(
        self,
        uploader: UploadCoordinator,
        memory_store: InMemoryObjectStore,
        pdf_file: UploadFile,
    ) -> None:
        handle = await uploader.begin_upload(pdf_file, "actor-1")

        assert re.fullmatch(r"actor-1/\d+-[0-9a-f]{8}\.pdf", handle.storage_key)
        assert memory_store.blobs[("tutela-pdfs", handle.storage_key)] == pdf_file.content
        assert handle.blob_url == f"https://blobs.test/tutela-pdfs/{handle.storage_key}"
        assert handle.file_name == "case.pdf"
        assert handle.size_bytes == pdf_file.size_bytes

    async def test_rejects_non_pdf_before_writing(
        self, uploader: UploadCoordinator, memory_store: InMemoryObjectStore
    ) -> None:
        seen: list[int] = []
        image = UploadFile(name="scan.png", content=b"\x89PNG", mime_type="image/png")

        with pytest.raises(InvalidFileTypeError, match="Only PDF files are allowed"):
            await uploader.begin_upload(image, "actor-1", seen.append)

        assert memory_store.blobs == {}
        assert seen == []

    async def test_storage_failure_propagates_without_completing(
        self,
        uploader: UploadCoordinator,
        memory_store: InMemoryObjectStore,
        pdf_file: UploadFile,
    ) -> None:
        seen: list[int] = []
        memory_store.fail_when = lambda bucket, key: True

        with pytest.raises(StorageUnavailableError):
            await uploader.begin_upload(pdf_file, "actor-1", seen.append)

        assert 100 not in seen

    async def test_attachment_key_nests_under_record(
        self, uploader: UploadCoordinator, memory_store: InMemoryObjectStore
    ) -> None:
        attachment = PendingAttachment(
            display_name="Poder Notarial.DOCX", mime_type="", content=b"doc"
        )

        stored = await uploader.upload_attachment(attachment, "actor-1", 42)

        assert re.fullmatch(r"actor-1/42/\d+-[0-9a-f]{8}\.docx", stored.key)
        assert stored.bucket == "tutela-attachments"
        assert stored.content_type == "application/octet-stream"
        assert memory_store.blobs[("tutela-attachments", stored.key)] == b"doc"

    def test_keys_use_clock_millis(self, memory_store: InMemoryObjectStore) -> None:
        uploader = UploadCoordinator(
            memory_store,
            documents_bucket="d",
            attachments_bucket="a",
            clock=lambda: 1700000000.123,
        )
        assert uploader.document_key("a/b").startswith("a_b/1700000000123-")

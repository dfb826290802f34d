from typing import Any

import psycopg
import pytest

from tutela_intake.database.repositories.intake_record_repository import IntakeRecordRepository
from tutela_intake.intake.exceptions import RecordNotFoundError
from tutela_intake.intake.models import CaseMetadata, RecordStatus, UploadHandle
from tutela_intake.storage.base import StoredObject


def _stored(actor_id: str, record_id: int, name: str) -> StoredObject:
    key = f"{actor_id}/{record_id}/{name}"
    return StoredObject(
        bucket="tutela-attachments",
        key=key,
        url=f"https://blobs.test/tutela-attachments/{key}",
        size_bytes=128,
        content_type="application/pdf",
    )


@pytest.mark.integration
@pytest.mark.usefixtures("integration_cleanup")
class TestIntakeRecordRepositoryRoundTrip:
    def test_insert_and_find_record_with_attachments(
        self, actor_id: str, metadata: CaseMetadata, document: UploadHandle
    ) -> None:
        repo = IntakeRecordRepository()
        record = repo.insert_record(actor_id, metadata, document)
        repo.insert_attachment(record.id, "poder.pdf", _stored(actor_id, record.id, "1.pdf"))
        repo.insert_attachment(record.id, "cedula.pdf", _stored(actor_id, record.id, "2.pdf"))

        found = repo.find_by_id(record.id, actor_id)

        assert found.metadata == metadata
        assert found.status is RecordStatus.ACTIVE
        assert found.document_key == document.storage_key
        assert found.created_at is not None
        assert [a.display_name for a in found.attachments] == ["poder.pdf", "cedula.pdf"]

    def test_list_records_newest_first(
        self, actor_id: str, metadata: CaseMetadata, document: UploadHandle
    ) -> None:
        repo = IntakeRecordRepository()
        first = repo.insert_record(actor_id, metadata, document)
        second = repo.insert_record(actor_id, metadata, document)

        ids = [r.id for r in repo.list_records(actor_id)]

        assert ids.index(second.id) < ids.index(first.id)

    def test_update_status_persists(
        self, actor_id: str, metadata: CaseMetadata, document: UploadHandle
    ) -> None:
        repo = IntakeRecordRepository()
        record = repo.insert_record(actor_id, metadata, document)

        repo.update_status(record.id, actor_id, RecordStatus.COMPLETED)

        assert repo.find_by_id(record.id, actor_id).status is RecordStatus.COMPLETED

    def test_delete_cascades_to_attachments(
        self,
        actor_id: str,
        metadata: CaseMetadata,
        document: UploadHandle,
        db_conn: psycopg.Connection[Any],
    ) -> None:
        repo = IntakeRecordRepository()
        record = repo.insert_record(actor_id, metadata, document)
        repo.insert_attachment(record.id, "poder.pdf", _stored(actor_id, record.id, "1.pdf"))

        deleted = repo.delete_record(record.id, actor_id)

        assert len(deleted.attachments) == 1
        with db_conn.cursor() as cur:
            cur.execute(
                "SELECT COUNT(*) FROM tutela_attachments WHERE tutela_id = %s", (record.id,)
            )
            row = cur.fetchone()
        assert row is not None
        assert row[0] == 0
        with pytest.raises(RecordNotFoundError):
            repo.find_by_id(record.id, actor_id)

    def test_missing_record_raises(self, actor_id: str) -> None:
        with pytest.raises(RecordNotFoundError, match="999999 not found"):
            IntakeRecordRepository().find_by_id(999999, actor_id)

    def test_other_actor_cannot_touch_record(
        self, actor_id: str, metadata: CaseMetadata, document: UploadHandle
    ) -> None:
        repo = IntakeRecordRepository()
        record = repo.insert_record(actor_id, metadata, document)

        with pytest.raises(RecordNotFoundError):
            repo.update_status(record.id, "someone-else", RecordStatus.COMPLETED)
        with pytest.raises(RecordNotFoundError):
            repo.delete_record(record.id, "someone-else")

        assert repo.find_by_id(record.id, actor_id).status is RecordStatus.ACTIVE

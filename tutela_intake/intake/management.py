from tutela_intake.database.repositories.intake_record_repository import IntakeRecordRepository
from tutela_intake.intake.models import IntakeRecord, RecordStatus
from tutela_intake.logging.logger import Log
from tutela_intake.storage.base import BaseObjectStore
from tutela_intake.storage.exceptions import StorageError


class RecordManager:
    """List, re-status and delete an actor's committed tutelas.

    Every operation is scoped to the acting user: a tutela owned by someone
    else is reported as not found.

    Deleting a tutela cascades: its attachment rows are removed by the
    database and every blob (PDF and attachments) is removed from storage.
    """

    def __init__(
        self,
        repository: IntakeRecordRepository,
        store: BaseObjectStore,
        *,
        documents_bucket: str,
        attachments_bucket: str,
    ) -> None:
        self._repository = repository
        self._store = store
        self._documents_bucket = documents_bucket
        self._attachments_bucket = attachments_bucket

    def list_records(self, actor_id: str) -> list[IntakeRecord]:
        return self._repository.list_records(actor_id)

    def get_record(self, actor_id: str, record_id: int) -> IntakeRecord:
        return self._repository.find_by_id(record_id, actor_id)

    def update_status(
        self, actor_id: str, record_id: int, status: RecordStatus | str
    ) -> None:
        """Move a tutela to another lifecycle status.

        Raises:
            ValueError: for an unknown status.
            RecordNotFoundError: if the actor owns no such tutela.
        """
        new_status = RecordStatus(status)
        self._repository.update_status(record_id, actor_id, new_status)
        Log.info(f"Tutela {record_id} status set to {new_status.value}")

    def delete_record(self, actor_id: str, record_id: int) -> IntakeRecord:
        """Delete a tutela, its attachment rows and all of its blobs.

        Rows are deleted first. Blob removal failures are logged and leave
        orphaned blobs behind rather than failing the delete.

        Raises:
            RecordNotFoundError: if the actor owns no such tutela.
        """
        record = self._repository.delete_record(record_id, actor_id)
        Log.info(f"Deleted tutela {record_id} with {len(record.attachments)} attachments")

        blobs = [(self._documents_bucket, record.document_key)]
        blobs += [(self._attachments_bucket, a.storage_key) for a in record.attachments]
        for bucket, key in blobs:
            try:
                self._store.delete(bucket, key)
            except StorageError as exc:
                Log.warning(f"Could not delete blob {bucket}/{key} of tutela {record_id}: {exc}")
        return record

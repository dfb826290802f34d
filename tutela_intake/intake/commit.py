import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from tutela_intake.database.repositories.intake_record_repository import IntakeRecordRepository
from tutela_intake.intake.exceptions import CommitFailedError
from tutela_intake.intake.models import (
    Attachment,
    CaseMetadata,
    IntakeRecord,
    PendingAttachment,
    RecordStatus,
    UploadHandle,
)
from tutela_intake.intake.upload import UploadCoordinator
from tutela_intake.logging.logger import Log

T = TypeVar("T")

SaveListener = Callable[[IntakeRecord], None]


async def _insert_to_completion(insert: Callable[..., T], *args: Any) -> tuple[T, bool]:
    """Run a blocking insert in a worker thread and wait for it to land.

    A cancel arriving mid-insert is held back until the row is written; the
    second value reports whether one arrived. If the insert fails after a
    cancel, the cancel is what propagates.
    """
    pending = asyncio.ensure_future(asyncio.to_thread(insert, *args))
    try:
        return await asyncio.shield(pending), False
    except asyncio.CancelledError:
        try:
            return await pending, True
        except Exception as exc:
            raise asyncio.CancelledError from exc


@dataclass(frozen=True)
class CommitResult:
    """A persisted record plus, on partial failure, what is still missing.

    ``remaining`` holds the attachments that were not committed, in their
    original order, so the caller can retry exactly that subset.
    """

    record: IntakeRecord
    failure: CommitFailedError | None = None
    remaining: tuple[PendingAttachment, ...] = ()

    @property
    def fully_committed(self) -> bool:
        return self.failure is None


class CommitCoordinator:
    """Persists a reviewed tutela: parent record first, then attachments.

    Attachments are best effort. Once the parent row exists it is never
    rolled back; attachments are committed one by one in caller order and
    the first failure stops the loop.

    ``on_saved`` is called with the record as it stands after the parent
    insert and after every attachment insert, so a caller whose commit is
    cancelled still knows exactly what was persisted.
    """

    def __init__(
        self,
        repository: IntakeRecordRepository,
        uploader: UploadCoordinator,
    ) -> None:
        self._repository = repository
        self._uploader = uploader

    async def commit(
        self,
        actor_id: str,
        metadata: CaseMetadata,
        document: UploadHandle,
        attachments: Sequence[PendingAttachment],
        on_saved: SaveListener | None = None,
    ) -> CommitResult:
        """Insert the record and its attachments.

        Raises:
            CommitFailedError: with stage "parent" if the record could not be
                inserted. No attachment is uploaded in that case.
        """
        try:
            record, cancelled = await _insert_to_completion(
                self._repository.insert_record,
                actor_id,
                metadata,
                document,
                RecordStatus.ACTIVE,
            )
        except Exception as exc:
            Log.error(f"Saving tutela {metadata.case_number} failed: {exc}")
            raise CommitFailedError(
                CommitFailedError.PARENT,
                succeeded=0,
                requested=len(attachments),
                reason=str(exc),
            ) from exc

        Log.info(f"Saved tutela {record.id} for case {metadata.case_number}")
        if on_saved is not None:
            on_saved(record)
        if cancelled:
            raise asyncio.CancelledError
        return await self.commit_attachments(actor_id, record, attachments, on_saved)

    async def commit_attachments(
        self,
        actor_id: str,
        record: IntakeRecord,
        attachments: Sequence[PendingAttachment],
        on_saved: SaveListener | None = None,
    ) -> CommitResult:
        """Upload and register attachments for an existing record.

        Failures are reported in the result, never raised.
        """
        committed: list[Attachment] = list(record.attachments)
        for index, attachment in enumerate(attachments):
            try:
                stored = await self._uploader.upload_attachment(attachment, actor_id, record.id)
                row, cancelled = await _insert_to_completion(
                    self._repository.insert_attachment,
                    record.id,
                    attachment.display_name,
                    stored,
                )
            except Exception as exc:
                failure = CommitFailedError(
                    CommitFailedError.ATTACHMENT,
                    succeeded=index,
                    requested=len(attachments),
                    reason=f"{attachment.display_name}: {exc}",
                )
                Log.error(f"Tutela {record.id}: {failure}")
                return CommitResult(
                    record=record.with_attachments(committed),
                    failure=failure,
                    remaining=tuple(attachments[index:]),
                )
            committed.append(row)
            if on_saved is not None:
                on_saved(record.with_attachments(committed))
            if cancelled:
                raise asyncio.CancelledError

        if attachments:
            Log.info(f"Tutela {record.id}: committed {len(attachments)} attachments")
        return CommitResult(record=record.with_attachments(committed))

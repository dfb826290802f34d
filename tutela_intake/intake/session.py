import asyncio
import uuid
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum

from tutela_intake.config.settings import Settings
from tutela_intake.database.repositories.intake_record_repository import IntakeRecordRepository
from tutela_intake.extraction.base import BaseExtractionEngine
from tutela_intake.extraction.factory import ExtractionEngineFactory
from tutela_intake.extraction.orchestrator import ExtractionOrchestrator, ExtractionResult
from tutela_intake.intake.auth import BaseAuthProvider, StaticAuthProvider
from tutela_intake.intake.commit import CommitCoordinator, CommitResult, SaveListener
from tutela_intake.intake.exceptions import (
    CommitFailedError,
    IntakeStateError,
    InvalidFileTypeError,
    OperationInProgressError,
    ValidationFailedError,
)
from tutela_intake.intake.models import (
    CaseMetadata,
    IntakeRecord,
    PendingAttachment,
    UploadFile,
    UploadHandle,
)
from tutela_intake.intake.upload import ProgressListener, UploadCoordinator
from tutela_intake.logging.logger import Log
from tutela_intake.storage.base import BaseObjectStore
from tutela_intake.storage.factory import ObjectStoreFactory


class IntakeState(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    EXTRACTING = "extracting"
    REVIEWING = "reviewing"
    COMMITTING = "committing"
    COMMITTED = "committed"
    FAILED = "failed"


class FailureStage(str, Enum):
    UPLOAD = "upload"
    EXTRACTION = "extraction"
    COMMIT = "commit"


@dataclass(frozen=True)
class SessionFailure:
    """The most recent failure, with a reason fit to show the operator."""

    stage: FailureStage
    reason: str
    retryable: bool = True


@dataclass(frozen=True)
class Transition:
    source: IntakeState
    target: IntakeState


class IntakeSession:
    """State machine for one tutela: upload -> extraction -> review -> commit.

    Only one upload, extraction or commit runs at a time; starting another
    raises OperationInProgressError. Metadata and attachment edits are
    accepted only while reviewing. The session is single-use: after a
    commit, start a new session for the next document.

    cancel() cancels the asyncio task that is running the in-flight upload
    or extraction, so run those calls in their own task when they may be
    abandoned.
    """

    def __init__(
        self,
        *,
        auth: BaseAuthProvider,
        uploader: UploadCoordinator,
        orchestrator: ExtractionOrchestrator,
        committer: CommitCoordinator,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self._auth = auth
        self._uploader = uploader
        self._orchestrator = orchestrator
        self._committer = committer

        self._state = IntakeState.IDLE
        self._failure: SessionFailure | None = None
        self._metadata = CaseMetadata.empty()
        self._attachments: list[PendingAttachment] = []
        self._document: UploadHandle | None = None
        self._document_bytes = b""
        self._upload_progress = 0
        self._record: IntakeRecord | None = None
        self._last_commit: CommitResult | None = None

        self._inflight_kind: str | None = None
        self._inflight_task: asyncio.Task[object] | None = None
        self.transitions: list[Transition] = []

    @property
    def state(self) -> IntakeState:
        return self._state

    @property
    def failure(self) -> SessionFailure | None:
        return self._failure

    @property
    def metadata(self) -> CaseMetadata:
        return self._metadata

    @property
    def attachments(self) -> tuple[PendingAttachment, ...]:
        """Attachments not yet committed."""
        return tuple(self._attachments)

    @property
    def document(self) -> UploadHandle | None:
        return self._document

    @property
    def upload_progress(self) -> int:
        return self._upload_progress

    @property
    def record(self) -> IntakeRecord | None:
        return self._record

    @property
    def last_commit(self) -> CommitResult | None:
        return self._last_commit

    @property
    def operation_in_progress(self) -> str | None:
        return self._inflight_kind

    # Upload and extraction

    async def begin_upload(
        self,
        file: UploadFile,
        on_progress: ProgressListener | None = None,
    ) -> UploadHandle:
        """Upload the primary PDF, then extract its metadata automatically.

        Allowed from IDLE, or from FAILED after an upload failure (the upload
        starts over from scratch). Ends in REVIEWING whether extraction
        succeeds or not.

        Raises:
            OperationInProgressError: if another operation is running.
            NotAuthenticatedError: if no actor is signed in.
            InvalidFileTypeError: if the file is not a PDF (not retryable).
            StorageUnavailableError: if the store fails (retryable).
        """
        with self._operation("upload"):
            self._require_upload_allowed()
            actor_id = self._auth.require_actor()

            previous_state, previous_failure = self._state, self._failure
            self._failure = None
            self._upload_progress = 0
            self._transition(IntakeState.UPLOADING)

            def track(percent: int) -> None:
                self._upload_progress = percent
                if on_progress is not None:
                    on_progress(percent)

            try:
                handle = await self._uploader.begin_upload(file, actor_id, track)
            except asyncio.CancelledError:
                Log.warning(f"Session {self.session_id}: upload of {file.name} abandoned")
                self._upload_progress = 0
                self._failure = previous_failure
                self._transition(previous_state)
                raise
            except InvalidFileTypeError as exc:
                self._fail(FailureStage.UPLOAD, str(exc), retryable=False)
                raise
            except Exception as exc:
                self._fail(FailureStage.UPLOAD, f"Could not upload the PDF: {exc}")
                raise

            self._document = handle
            self._document_bytes = file.content
            await self._run_extraction()
            return handle

    async def reextract(self) -> ExtractionResult:
        """Run extraction again on the uploaded PDF.

        The five required fields are replaced by the new candidate, or emptied
        if extraction fails. Status notes are kept.

        Raises:
            OperationInProgressError: if another operation is running.
            IntakeStateError: unless the session is reviewing.
        """
        with self._operation("extraction"):
            self._require_state({IntakeState.REVIEWING}, "re-extract")
            return await self._run_extraction()

    def cancel(self) -> bool:
        """Abandon the in-flight upload or extraction.

        Returns False when there is nothing to cancel. Commits cannot be
        cancelled.
        """
        if self._inflight_task is None or self._inflight_kind not in ("upload", "extraction"):
            return False
        Log.info(f"Session {self.session_id}: cancelling {self._inflight_kind}")
        return self._inflight_task.cancel()

    async def _run_extraction(self) -> ExtractionResult:
        self._inflight_kind = "extraction"
        self._transition(IntakeState.EXTRACTING)
        try:
            result = await self._orchestrator.extract(self._document_bytes)
        except asyncio.CancelledError:
            Log.warning(f"Session {self.session_id}: extraction abandoned, metadata kept")
            self._transition(IntakeState.REVIEWING)
            raise

        if result.succeeded:
            self._failure = None
        else:
            self._failure = SessionFailure(
                FailureStage.EXTRACTION,
                f"Could not extract the case data, fill it in manually: {result.error}",
            )
            Log.warning(f"Session {self.session_id}: {self._failure.reason}")
        self._metadata = self._metadata.with_required_from(result.metadata)
        self._transition(IntakeState.REVIEWING)
        return result

    # Review

    def update_metadata(self, **values: str) -> CaseMetadata:
        """Overwrite the named metadata fields with operator input.

        Raises:
            IntakeStateError: unless the session is reviewing.
            ValueError: for unknown field names.
            TypeError: for non-string values.
        """
        self._require_state({IntakeState.REVIEWING}, "edit metadata")
        for name, value in values.items():
            if not isinstance(value, str):
                raise TypeError(f"Metadata field '{name}' must be a string")
        self._metadata = self._metadata.with_values(**values)
        return self._metadata

    def add_attachment(self, attachment: PendingAttachment) -> None:
        self._require_state({IntakeState.REVIEWING}, "add attachments")
        self._attachments.append(attachment)
        Log.debug(f"Session {self.session_id}: attached {attachment.display_name}")

    def remove_attachment(self, index: int) -> PendingAttachment:
        """Drop the attachment at ``index``.

        Raises:
            IntakeStateError: unless the session is reviewing.
            IndexError: if there is no attachment at that position.
        """
        self._require_state({IntakeState.REVIEWING}, "remove attachments")
        if not 0 <= index < len(self._attachments):
            raise IndexError(f"No attachment at position {index}")
        return self._attachments.pop(index)

    # Commit

    async def commit(self) -> CommitResult:
        """Persist the reviewed tutela with its attachments.

        A partial attachment failure still ends in COMMITTED; the result and
        ``failure`` carry how many attachments made it, and
        retry_attachments() commits the rest.

        Raises:
            OperationInProgressError: if another operation is running.
            IntakeStateError: unless the session is reviewing.
            ValidationFailedError: if a required field is empty or no PDF
                was uploaded. The session stays in REVIEWING.
            NotAuthenticatedError: if no actor is signed in.
            CommitFailedError: if the record itself could not be saved. The
                session returns to REVIEWING so the commit can be retried.

        If the task running the commit is cancelled after the record was
        saved, the session still ends in COMMITTED and the attachments that
        did not make it stay pending for retry_attachments().
        """
        with self._operation("commit"):
            self._require_state({IntakeState.REVIEWING}, "commit")
            missing = self._metadata.missing_fields()
            document = self._document
            if missing or document is None or not document.blob_url:
                error = ValidationFailedError(
                    missing, has_document=document is not None and bool(document.blob_url)
                )
                Log.warning(f"Session {self.session_id}: {error}")
                raise error
            actor_id = self._auth.require_actor()

            pending = tuple(self._attachments)
            self._transition(IntakeState.COMMITTING)
            try:
                result = await self._committer.commit(
                    actor_id, self._metadata, document, pending, self._track_saved(pending)
                )
            except CommitFailedError as exc:
                self._fail(FailureStage.COMMIT, str(exc))
                self._transition(IntakeState.REVIEWING)
                raise
            except BaseException:
                if self._record is None:
                    self._transition(IntakeState.REVIEWING)
                    raise
                self._apply_interrupted_commit(len(pending))
                self._transition(IntakeState.COMMITTED)
                raise

            self._apply_commit_result(result)
            self._transition(IntakeState.COMMITTED)
            return result

    async def retry_attachments(self) -> CommitResult:
        """Commit the attachments left over from a partial commit.

        Raises:
            OperationInProgressError: if another operation is running.
            IntakeStateError: unless committed with attachments still pending.
        """
        with self._operation("commit"):
            self._require_state({IntakeState.COMMITTED}, "retry attachments")
            if self._record is None or not self._attachments:
                raise IntakeStateError("No attachments are waiting to be committed")
            actor_id = self._auth.require_actor()
            Log.info(
                f"Session {self.session_id}: retrying {len(self._attachments)} attachments "
                f"for tutela {self._record.id}"
            )
            pending = tuple(self._attachments)
            try:
                result = await self._committer.commit_attachments(
                    actor_id, self._record, pending, self._track_saved(pending)
                )
            except BaseException:
                self._apply_interrupted_commit(len(pending))
                raise
            self._apply_commit_result(result)
            return result

    def _track_saved(self, pending: Sequence[PendingAttachment]) -> SaveListener:
        already_saved = len(self._record.attachments) if self._record is not None else 0

        def saved(record: IntakeRecord) -> None:
            self._record = record
            self._attachments = list(pending[len(record.attachments) - already_saved :])

        return saved

    def _apply_interrupted_commit(self, requested: int) -> None:
        """Settle the session after a commit stopped midway with the record saved."""
        record = self._record
        if record is None:
            return
        remaining = tuple(self._attachments)
        failure = None
        if remaining:
            failure = CommitFailedError(
                CommitFailedError.ATTACHMENT,
                succeeded=requested - len(remaining),
                requested=requested,
                reason="the commit was interrupted",
            )
        Log.warning(
            f"Session {self.session_id}: commit of tutela {record.id} interrupted "
            f"with {len(remaining)} attachments pending"
        )
        self._apply_commit_result(
            CommitResult(record=record, failure=failure, remaining=remaining)
        )

    def _apply_commit_result(self, result: CommitResult) -> None:
        self._record = result.record
        self._last_commit = result
        self._attachments = list(result.remaining)
        if result.failure is None:
            self._failure = None
        else:
            self._failure = SessionFailure(FailureStage.COMMIT, str(result.failure))
            Log.warning(f"Session {self.session_id}: {result.failure}")

    # State helpers

    @contextmanager
    def _operation(self, kind: str) -> Generator[None, None, None]:
        if self._inflight_kind is not None:
            raise OperationInProgressError(
                f"Cannot start {kind}: {self._inflight_kind} is already in progress"
            )
        self._inflight_kind = kind
        self._inflight_task = asyncio.current_task()
        try:
            yield
        finally:
            self._inflight_kind = None
            self._inflight_task = None

    def _require_state(self, allowed: set[IntakeState], action: str) -> None:
        if self._state not in allowed:
            raise IntakeStateError(f"Cannot {action} while the session is {self._state.value}")

    def _require_upload_allowed(self) -> None:
        if self._state is IntakeState.IDLE:
            return
        if (
            self._state is IntakeState.FAILED
            and self._failure is not None
            and self._failure.stage is FailureStage.UPLOAD
        ):
            return
        raise IntakeStateError(
            f"Cannot start an upload while the session is {self._state.value}"
        )

    def _fail(self, stage: FailureStage, reason: str, retryable: bool = True) -> None:
        self._failure = SessionFailure(stage=stage, reason=reason, retryable=retryable)
        Log.error(f"Session {self.session_id}: {stage.value} failed: {reason}")
        self._transition(IntakeState.FAILED)

    def _transition(self, target: IntakeState) -> None:
        source = self._state
        self._state = target
        self.transitions.append(Transition(source=source, target=target))
        Log.info(f"Session {self.session_id}: {source.value} -> {target.value}")


def build_intake_session(
    settings: Settings,
    *,
    auth: BaseAuthProvider | None = None,
    store: BaseObjectStore | None = None,
    engine: BaseExtractionEngine | None = None,
    repository: IntakeRecordRepository | None = None,
) -> IntakeSession:
    """Build an IntakeSession wired to the configured adapters."""
    uploader = UploadCoordinator(
        store if store is not None else ObjectStoreFactory.create(settings),
        documents_bucket=settings.documents_bucket,
        attachments_bucket=settings.attachments_bucket,
    )
    orchestrator = ExtractionOrchestrator(
        engine if engine is not None else ExtractionEngineFactory.create(settings),
        timeout_seconds=settings.extraction_timeout_seconds,
    )
    committer = CommitCoordinator(
        repository if repository is not None else IntakeRecordRepository(),
        uploader,
    )
    return IntakeSession(
        auth=auth if auth is not None else StaticAuthProvider(settings.actor_id),
        uploader=uploader,
        orchestrator=orchestrator,
        committer=committer,
    )

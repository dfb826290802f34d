from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum

REQUIRED_METADATA_FIELDS: tuple[str, ...] = (
    "petitioners",
    "respondents",
    "court",
    "court_email",
    "case_number",
)


class RecordStatus(str, Enum):
    """Lifecycle status of a persisted intake record."""

    ACTIVE = "active"
    DRAFT = "draft"
    COMPLETED = "completed"


@dataclass(frozen=True)
class CaseMetadata:
    """Structured case data extracted from a tutela filing."""

    petitioners: str = ""
    respondents: str = ""
    court: str = ""
    court_email: str = ""
    case_number: str = ""
    status_notes: str = ""

    @classmethod
    def empty(cls) -> "CaseMetadata":
        return cls()

    def missing_fields(self) -> list[str]:
        """Names of required fields that are empty or whitespace only."""
        return [name for name in REQUIRED_METADATA_FIELDS if not getattr(self, name).strip()]

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def with_values(self, **values: str) -> "CaseMetadata":
        """Return a copy with the given fields replaced.

        Raises:
            ValueError: if a name is not a metadata field.
        """
        known = {f.name for f in fields(self)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown metadata fields: {unknown}")
        return replace(self, **values)

    def with_required_from(self, candidate: "CaseMetadata") -> "CaseMetadata":
        """Overwrite every required field with the candidate's value, keep notes."""
        return replace(
            self,
            **{name: getattr(candidate, name) for name in REQUIRED_METADATA_FIELDS},
        )


@dataclass(frozen=True)
class UploadFile:
    """A file selected by the operator, held in memory until it is stored."""

    name: str
    content: bytes
    mime_type: str

    @property
    def size_bytes(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class PendingAttachment:
    """An attachment that exists only in session memory until commit."""

    display_name: str
    mime_type: str
    content: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class UploadHandle:
    """Where a primary document ended up in the object store."""

    storage_key: str
    blob_url: str
    file_name: str
    size_bytes: int


@dataclass(frozen=True)
class Attachment:
    """A persisted attachment row."""

    id: int
    record_id: int
    display_name: str
    blob_url: str
    storage_key: str
    mime_type: str
    size_bytes: int
    created_at: datetime | None = None


@dataclass(frozen=True)
class IntakeRecord:
    """A committed tutela with its primary document and attachments."""

    id: int
    actor_id: str
    metadata: CaseMetadata
    document_url: str
    document_name: str
    document_key: str
    status: RecordStatus = RecordStatus.ACTIVE
    attachments: tuple[Attachment, ...] = field(default_factory=tuple)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def with_attachments(self, attachments: list[Attachment]) -> "IntakeRecord":
        return replace(self, attachments=tuple(attachments))

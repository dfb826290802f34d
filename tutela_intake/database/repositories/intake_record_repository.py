from typing import Any

import psycopg
from psycopg.rows import dict_row

from tutela_intake.database.connection import get_connection
from tutela_intake.intake.exceptions import RecordNotFoundError
from tutela_intake.intake.models import (
    Attachment,
    CaseMetadata,
    IntakeRecord,
    RecordStatus,
    UploadHandle,
)
from tutela_intake.storage.base import StoredObject

_RECORD_COLUMNS = """
    id, user_id, accionantes, accionados, juzgado, email_juzgado,
    numero_radicado, informacion_estado, pdf_url, pdf_name, pdf_key,
    status, created_at, updated_at
"""

_ATTACHMENT_COLUMNS = """
    id, tutela_id, file_name, file_url, file_key, file_type, file_size, created_at
"""


class IntakeRecordRepository:
    """Database operations for the tutelas and tutela_attachments tables."""

    def insert_record(
        self,
        actor_id: str,
        metadata: CaseMetadata,
        document: UploadHandle,
        status: RecordStatus = RecordStatus.ACTIVE,
    ) -> IntakeRecord:
        """Insert a tutela row and return it with generated id and timestamps.

        Raises:
            ValueError: if the document has no blob URL.
        """
        if not document.blob_url:
            raise ValueError("A tutela cannot be saved without a stored PDF")
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO tutelas
                    (user_id, accionantes, accionados, juzgado, email_juzgado,
                     numero_radicado, informacion_estado, pdf_url, pdf_name,
                     pdf_key, status)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING {_RECORD_COLUMNS}
                    """,
                    (
                        actor_id,
                        metadata.petitioners,
                        metadata.respondents,
                        metadata.court,
                        metadata.court_email,
                        metadata.case_number,
                        metadata.status_notes,
                        document.blob_url,
                        document.file_name,
                        document.storage_key,
                        status.value,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT INTO tutelas returned no row")
        return _row_to_record(row)

    def insert_attachment(
        self,
        record_id: int,
        display_name: str,
        stored: StoredObject,
    ) -> Attachment:
        """Insert a child attachment row referencing its tutela."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO tutela_attachments
                    (tutela_id, file_name, file_url, file_key, file_type, file_size)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    RETURNING {_ATTACHMENT_COLUMNS}
                    """,
                    (
                        record_id,
                        display_name,
                        stored.url,
                        stored.key,
                        stored.content_type,
                        stored.size_bytes,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT INTO tutela_attachments returned no row")
        return _row_to_attachment(row)

    def find_by_id(self, record_id: int, actor_id: str) -> IntakeRecord:
        """Load one of the actor's tutelas together with its attachments.

        Raises:
            RecordNotFoundError: if the actor owns no tutela with this ID.
        """
        with get_connection() as conn:
            record = self._select_record(conn, record_id, actor_id)
            attachments = self._select_attachments(conn, record_id)
        return record.with_attachments(attachments)

    def list_records(self, actor_id: str) -> list[IntakeRecord]:
        """Return the actor's tutelas, newest first, without attachments."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_RECORD_COLUMNS}
                    FROM tutelas
                    WHERE user_id = %s
                    ORDER BY created_at DESC, id DESC
                    """,
                    (actor_id,),
                )
                rows = cur.fetchall()
        return [_row_to_record(row) for row in rows]

    def list_attachments(self, record_id: int) -> list[Attachment]:
        with get_connection() as conn:
            return self._select_attachments(conn, record_id)

    def update_status(self, record_id: int, actor_id: str, status: RecordStatus) -> None:
        """Change the lifecycle status of one of the actor's tutelas.

        Raises:
            RecordNotFoundError: if the actor owns no tutela with this ID.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE tutelas
                    SET status = %s, updated_at = NOW()
                    WHERE id = %s AND user_id = %s
                    """,
                    (status.value, record_id, actor_id),
                )
                if cur.rowcount == 0:
                    raise RecordNotFoundError(f"Tutela {record_id} not found")
            conn.commit()

    def delete_record(self, record_id: int, actor_id: str) -> IntakeRecord:
        """Delete a tutela; its attachment rows go with it (ON DELETE CASCADE).

        Returns the deleted record with its attachments so the caller can
        remove the blobs.

        Raises:
            RecordNotFoundError: if the actor owns no tutela with this ID.
        """
        with get_connection() as conn:
            record = self._select_record(conn, record_id, actor_id)
            attachments = self._select_attachments(conn, record_id)
            conn.execute(
                "DELETE FROM tutelas WHERE id = %s AND user_id = %s", (record_id, actor_id)
            )
            conn.commit()
        return record.with_attachments(attachments)

    @staticmethod
    def _select_record(
        conn: psycopg.Connection[Any], record_id: int, actor_id: str
    ) -> IntakeRecord:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM tutelas WHERE id = %s AND user_id = %s",
                (record_id, actor_id),
            )
            row = cur.fetchone()
        if row is None:
            raise RecordNotFoundError(f"Tutela {record_id} not found")
        return _row_to_record(row)

    @staticmethod
    def _select_attachments(
        conn: psycopg.Connection[Any], record_id: int
    ) -> list[Attachment]:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_ATTACHMENT_COLUMNS}
                FROM tutela_attachments
                WHERE tutela_id = %s
                ORDER BY id
                """,
                (record_id,),
            )
            rows = cur.fetchall()
        return [_row_to_attachment(row) for row in rows]


def _row_to_record(row: dict[str, Any]) -> IntakeRecord:
    return IntakeRecord(
        id=row["id"],
        actor_id=row["user_id"],
        metadata=CaseMetadata(
            petitioners=row["accionantes"],
            respondents=row["accionados"],
            court=row["juzgado"],
            court_email=row["email_juzgado"],
            case_number=row["numero_radicado"],
            status_notes=row["informacion_estado"] or "",
        ),
        document_url=row["pdf_url"],
        document_name=row["pdf_name"],
        document_key=row["pdf_key"],
        status=RecordStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_attachment(row: dict[str, Any]) -> Attachment:
    return Attachment(
        id=row["id"],
        record_id=row["tutela_id"],
        display_name=row["file_name"],
        blob_url=row["file_url"],
        storage_key=row["file_key"],
        mime_type=row["file_type"],
        size_bytes=row["file_size"],
        created_at=row["created_at"],
    )

"""Command-line entry point for tutela intake and record management.

Subcommands:
    intake   upload a tutela PDF, extract, apply edits and commit it
    list     list the actor's tutelas, newest first
    status   change a tutela's lifecycle status
    delete   delete a tutela with its attachments
    init-db  create the tables
"""

import argparse
import asyncio
import json
import mimetypes
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from tutela_intake.config.settings import Settings
from tutela_intake.database.connection import close_pool, get_connection, init_pool
from tutela_intake.database.repositories.intake_record_repository import IntakeRecordRepository
from tutela_intake.intake.auth import StaticAuthProvider
from tutela_intake.intake.exceptions import IntakeError
from tutela_intake.intake.management import RecordManager
from tutela_intake.intake.models import IntakeRecord, PendingAttachment, RecordStatus, UploadFile
from tutela_intake.intake.session import IntakeSession, build_intake_session
from tutela_intake.logging.logger import Log
from tutela_intake.storage.exceptions import StorageError
from tutela_intake.storage.factory import ObjectStoreFactory

SCHEMA_PATH = Path(__file__).parent / "database" / "schema.sql"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PARTIAL = 2


def _read_upload(path: Path) -> UploadFile:
    mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return UploadFile(name=path.name, content=path.read_bytes(), mime_type=mime_type)


def _read_attachment(path: Path) -> PendingAttachment:
    upload = _read_upload(path)
    return PendingAttachment(
        display_name=upload.name, mime_type=upload.mime_type, content=upload.content
    )


def _parse_assignments(pairs: list[str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep:
            raise ValueError(f"Expected field=value, got '{pair}'")
        values[name.strip()] = value
    return values


def _record_to_dict(record: IntakeRecord) -> dict[str, Any]:
    data = asdict(record)
    data["status"] = record.status.value
    return data


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


async def run_intake(session: IntakeSession, args: argparse.Namespace) -> int:
    """Drive one session end to end and print the outcome."""

    def show_progress(percent: int) -> None:
        print(f"\rUploading {args.file.name}: {percent:3d}%", end="", file=sys.stderr)
        if percent == 100:
            print(file=sys.stderr)

    await session.begin_upload(_read_upload(args.file), on_progress=show_progress)
    if session.failure is not None:
        print(session.failure.reason, file=sys.stderr)

    edits = _parse_assignments(args.set)
    if args.notes is not None:
        edits["status_notes"] = args.notes
    if edits:
        session.update_metadata(**edits)
    for path in args.attach:
        session.add_attachment(_read_attachment(path))

    _print_json(asdict(session.metadata))
    if args.dry_run:
        return EXIT_OK

    result = await session.commit()
    _print_json(_record_to_dict(result.record))
    if result.failure is not None:
        print(str(result.failure), file=sys.stderr)
        return EXIT_PARTIAL
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tutela-intake", description=__doc__.splitlines()[0])
    parser.add_argument("--actor", default=None, help="actor id (defaults to ACTOR_ID)")
    sub = parser.add_subparsers(dest="command", required=True)

    intake = sub.add_parser("intake", help="upload, extract and commit a tutela PDF")
    intake.add_argument("file", type=Path)
    intake.add_argument("--attach", type=Path, action="append", default=[])
    intake.add_argument(
        "--set", action="append", default=[], metavar="FIELD=VALUE",
        help="override an extracted field, e.g. --set case_number=456",
    )
    intake.add_argument("--notes", default=None, help="status notes")
    intake.add_argument("--dry-run", action="store_true", help="stop before committing")

    sub.add_parser("list", help="list tutelas")

    status = sub.add_parser("status", help="change a tutela's status")
    status.add_argument("record_id", type=int)
    status.add_argument("status", choices=[s.value for s in RecordStatus])

    delete = sub.add_parser("delete", help="delete a tutela and its attachments")
    delete.add_argument("record_id", type=int)

    sub.add_parser("init-db", help="create the tables")
    return parser


def _init_db() -> None:
    with get_connection() as conn:
        conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
        conn.commit()
    Log.info("Database schema is in place")


def _dispatch(args: argparse.Namespace, settings: Settings) -> int:
    actor_id = args.actor or settings.actor_id
    if args.command == "init-db":
        _init_db()
        return EXIT_OK
    if args.command == "intake":
        session = build_intake_session(settings, auth=StaticAuthProvider(actor_id))
        return asyncio.run(run_intake(session, args))

    actor_id = StaticAuthProvider(actor_id).require_actor()
    manager = RecordManager(
        IntakeRecordRepository(),
        ObjectStoreFactory.create(settings),
        documents_bucket=settings.documents_bucket,
        attachments_bucket=settings.attachments_bucket,
    )
    if args.command == "list":
        _print_json([_record_to_dict(r) for r in manager.list_records(actor_id)])
    elif args.command == "status":
        manager.update_status(actor_id, args.record_id, args.status)
    elif args.command == "delete":
        deleted = manager.delete_record(actor_id, args.record_id)
        print(f"Deleted tutela {deleted.id}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Entry point: parse args -> initialize pool -> run command."""
    args = _build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)
    try:
        return _dispatch(args, settings)
    except (IntakeError, StorageError, ValueError, OSError) as exc:
        Log.error(f"{args.command} failed: {exc}")
        return EXIT_FAILED
    finally:
        close_pool()


if __name__ == "__main__":
    sys.exit(main())

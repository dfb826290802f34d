import io

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from doubles import CANDIDATE, InMemoryObjectStore, InMemoryRecordRepository, ScriptedEngine
from tutela_intake.extraction.orchestrator import ExtractionOrchestrator
from tutela_intake.intake.auth import StaticAuthProvider
from tutela_intake.intake.commit import CommitCoordinator
from tutela_intake.intake.models import UploadFile
from tutela_intake.intake.session import IntakeSession
from tutela_intake.intake.upload import UploadCoordinator


@pytest.fixture()
def memory_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture()
def record_repository() -> InMemoryRecordRepository:
    return InMemoryRecordRepository()


@pytest.fixture()
def engine() -> ScriptedEngine:
    return ScriptedEngine(CANDIDATE)


@pytest.fixture()
def uploader(memory_store: InMemoryObjectStore) -> UploadCoordinator:
    return UploadCoordinator(
        memory_store,
        documents_bucket="tutela-pdfs",
        attachments_bucket="tutela-attachments",
    )


@pytest.fixture()
def session(
    uploader: UploadCoordinator,
    engine: ScriptedEngine,
    record_repository: InMemoryRecordRepository,
) -> IntakeSession:
    return IntakeSession(
        auth=StaticAuthProvider("actor-1"),
        uploader=uploader,
        orchestrator=ExtractionOrchestrator(engine, timeout_seconds=5),
        committer=CommitCoordinator(record_repository, uploader),
        session_id="test",
    )


@pytest.fixture()
def pdf_file() -> UploadFile:
    return UploadFile(
        name="case.pdf", content=b"%PDF-1.4 " + b"x" * 5000, mime_type="application/pdf"
    )


@pytest.fixture()
def tutela_pdf_bytes() -> bytes:
    """A two-page PDF whose first page holds a tutela caption."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Accionante: Juan Perez Garcia")
    c.drawString(72, 700, "Accionado: EPS Salud Total")
    c.drawString(72, 680, "Radicado 11001-31-03-001-2024-00123-00")
    c.showPage()
    c.drawString(72, 720, "Hechos de la tutela")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """A valid PDF with one blank page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()

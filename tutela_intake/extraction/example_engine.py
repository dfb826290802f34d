"""Example extraction engine.

Returns a fixed candidate without reading the document. Use it for local
development and demos, and as a template for new engines: implement
BaseExtractionEngine and register it in ExtractionEngineFactory.
"""

from typing import ClassVar

from tutela_intake.extraction.base import BaseExtractionEngine
from tutela_intake.intake.models import CaseMetadata


class ExampleExtractionEngine(BaseExtractionEngine):
    """Engine that always answers with the same sample tutela."""

    DEFAULT_CANDIDATE: ClassVar[CaseMetadata] = CaseMetadata(
        petitioners="Juan Pérez García, María López Silva",
        respondents="Ministerio de Salud, EPS Salud Total",
        court="Juzgado Tercero Civil del Circuito de Bogotá",
        court_email="juzgado3civil@cendoj.ramajudicial.gov.co",
        case_number="11001-31-03-001-2024-00123-00",
    )

    def __init__(self, candidate: CaseMetadata | None = None) -> None:
        self._candidate = candidate or self.DEFAULT_CANDIDATE

    def extract(self, document_bytes: bytes) -> CaseMetadata:
        _ = document_bytes
        return self._candidate

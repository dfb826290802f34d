from abc import ABC, abstractmethod

from tutela_intake.intake.models import CaseMetadata


class BaseExtractionEngine(ABC):
    """Contract for every engine that turns a tutela PDF into case metadata."""

    @abstractmethod
    def extract(self, document_bytes: bytes) -> CaseMetadata:
        """Produce a metadata candidate from raw document bytes.

        Engines may be non-deterministic. A returned candidate always has the
        five required fields populated.

        Raises:
            ExtractionError: on any failure.
        """

import asyncio
from dataclasses import dataclass

from tutela_intake.extraction.base import BaseExtractionEngine
from tutela_intake.extraction.exceptions import ExtractionError
from tutela_intake.intake.models import CaseMetadata
from tutela_intake.logging.logger import Log


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one extraction call.

    A failed result always carries all-empty metadata so callers never keep
    stale values from an earlier candidate.
    """

    metadata: CaseMetadata
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, reason: str) -> "ExtractionResult":
        return cls(metadata=CaseMetadata.empty(), error=reason)


class ExtractionOrchestrator:
    """Runs the extraction engine once per call and maps its outcome.

    Holds no session state: a failed call never blocks a later one, and the
    candidate is only returned, never applied.
    """

    def __init__(
        self,
        engine: BaseExtractionEngine,
        timeout_seconds: float | None = None,
    ) -> None:
        self._engine = engine
        self._timeout_seconds = timeout_seconds

    async def extract(self, document_bytes: bytes) -> ExtractionResult:
        Log.info(f"Running {type(self._engine).__name__} on {len(document_bytes)} bytes")
        try:
            candidate = await asyncio.wait_for(
                asyncio.to_thread(self._engine.extract, document_bytes),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError:
            reason = f"Extraction engine did not answer within {self._timeout_seconds}s"
            Log.warning(reason)
            return ExtractionResult.failed(reason)
        except ExtractionError as exc:
            Log.warning(f"Extraction failed: {exc}")
            return ExtractionResult.failed(str(exc))
        except Exception as exc:
            Log.exception(f"Extraction engine crashed: {exc}")
            return ExtractionResult.failed(f"Extraction engine error: {exc}")

        missing = candidate.missing_fields()
        if missing:
            reason = f"Extraction returned empty fields: {', '.join(missing)}"
            Log.warning(reason)
            return ExtractionResult.failed(reason)

        Log.info(f"Extraction succeeded for case {candidate.case_number}")
        return ExtractionResult(metadata=candidate)

from tutela_intake.extraction.base import BaseExtractionEngine
from tutela_intake.extraction.factory import ExtractionEngineFactory
from tutela_intake.extraction.orchestrator import ExtractionOrchestrator, ExtractionResult

__all__ = [
    "BaseExtractionEngine",
    "ExtractionEngineFactory",
    "ExtractionOrchestrator",
    "ExtractionResult",
]

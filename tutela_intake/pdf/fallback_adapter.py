from collections.abc import Sequence

from tutela_intake.logging.logger import Log
from tutela_intake.pdf.base import BasePdfExtractor
from tutela_intake.pdf.exceptions import PdfExtractionError


class FallbackPdfExtractor(BasePdfExtractor):
    """Tries each extractor in order and returns the first text found."""

    def __init__(self, extractors: Sequence[BasePdfExtractor]) -> None:
        super().__init__()
        if not extractors:
            raise ValueError("FallbackPdfExtractor needs at least one extractor")
        self._extractors = list(extractors)

    def extract(self, pdf_bytes: bytes) -> str:
        errors: list[str] = []
        for extractor in self._extractors:
            try:
                return extractor.extract(pdf_bytes)
            except PdfExtractionError as exc:
                Log.debug(f"{type(extractor).__name__} could not read the PDF: {exc}")
                errors.append(str(exc))
        raise PdfExtractionError("; ".join(errors))

import pymupdf

from tutela_intake.pdf.base import BasePdfExtractor
from tutela_intake.pdf.exceptions import PdfExtractionError


class PyMuPdfAdapter(BasePdfExtractor):
    """Extracts text from PDF using PyMuPDF."""

    def extract(self, pdf_bytes: bytes) -> str:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                limit = self._page_limit(doc.page_count)
                text = "\n".join(doc[i].get_text() for i in range(limit)).strip()
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc
        if not text:
            raise PdfExtractionError("PDF contains no extractable text")
        return text

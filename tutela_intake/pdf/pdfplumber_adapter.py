import io

import pdfplumber

from tutela_intake.pdf.base import BasePdfExtractor
from tutela_intake.pdf.exceptions import PdfExtractionError


class PdfPlumberAdapter(BasePdfExtractor):
    """Extracts text from PDF using pdfplumber."""

    def extract(self, pdf_bytes: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                pages = pdf.pages[: self._page_limit(len(pdf.pages))]
                text = "\n".join(page.extract_text() or "" for page in pages).strip()
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc
        if not text:
            raise PdfExtractionError("PDF contains no extractable text")
        return text

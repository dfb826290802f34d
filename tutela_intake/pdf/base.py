from abc import ABC, abstractmethod


class BasePdfExtractor(ABC):
    """Contract for PDF text extraction adapters."""

    def __init__(self, max_pages: int | None = None) -> None:
        self._max_pages = max_pages

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> str:
        """Extract plain text from the leading pages of a PDF.

        Only the first ``max_pages`` pages are read when a limit is set; the
        caption of a filing (parties, court, case number) sits up front.

        Raises:
            PdfExtractionError: if the PDF cannot be read or holds no text.
        """

    def _page_limit(self, page_count: int) -> int:
        if self._max_pages is None or self._max_pages <= 0:
            return page_count
        return min(page_count, self._max_pages)

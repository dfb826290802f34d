from unittest.mock import MagicMock

import pytest

from tutela_intake.pdf.exceptions import PdfExtractionError
from tutela_intake.pdf.fallback_adapter import FallbackPdfExtractor
from tutela_intake.pdf.factory import PdfExtractorFactory
from tutela_intake.pdf.pdfplumber_adapter import PdfPlumberAdapter
from tutela_intake.pdf.pymupdf_adapter import PyMuPdfAdapter

ADAPTERS = [PdfPlumberAdapter, PyMuPdfAdapter]


@pytest.mark.parametrize("adapter_cls", ADAPTERS)
class TestPdfAdapters:
    def test_extracts_caption_text(self, adapter_cls, tutela_pdf_bytes: bytes) -> None:
        text = adapter_cls().extract(tutela_pdf_bytes)
        assert "Juan Perez Garcia" in text
        assert "11001-31-03-001-2024-00123-00" in text
        assert "Hechos de la tutela" in text

    def test_reads_only_leading_pages(self, adapter_cls, tutela_pdf_bytes: bytes) -> None:
        text = adapter_cls(max_pages=1).extract(tutela_pdf_bytes)
        assert "EPS Salud Total" in text
        assert "Hechos de la tutela" not in text

    def test_blank_pdf_raises(self, adapter_cls, empty_pdf_bytes: bytes) -> None:
        with pytest.raises(PdfExtractionError, match="no extractable text"):
            adapter_cls().extract(empty_pdf_bytes)

    def test_invalid_bytes_raise(self, adapter_cls) -> None:
        with pytest.raises(PdfExtractionError):
            adapter_cls().extract(b"not a pdf at all")


class TestPdfExtractorFactory:
    def test_creates_configured_adapter_with_page_limit(self) -> None:
        settings = MagicMock(pdf_engine="PyMuPDF", pdf_max_pages=2)
        adapter = PdfExtractorFactory.create(settings)
        assert isinstance(adapter, PyMuPdfAdapter)
        assert adapter._page_limit(10) == 2

    def test_no_limit_reads_every_page(self) -> None:
        adapter = PdfPlumberAdapter(max_pages=0)
        assert adapter._page_limit(7) == 7

    def test_unknown_engine_raises(self) -> None:
        settings = MagicMock(pdf_engine="tika", pdf_max_pages=2)
        with pytest.raises(ValueError, match="Unknown PDF engine 'tika'"):
            PdfExtractorFactory.create(settings)

    def test_auto_chains_all_adapters(self) -> None:
        settings = MagicMock(pdf_engine="auto", pdf_max_pages=3)
        adapter = PdfExtractorFactory.create(settings)
        assert isinstance(adapter, FallbackPdfExtractor)
        assert [type(a) for a in adapter._extractors] == [PdfPlumberAdapter, PyMuPdfAdapter]


class TestFallbackPdfExtractor:
    def test_uses_next_extractor_when_first_fails(self) -> None:
        first = MagicMock()
        first.extract.side_effect = PdfExtractionError("pdfplumber extraction failed: bad xref")
        second = MagicMock()
        second.extract.return_value = "Accionante: Juan"

        assert FallbackPdfExtractor([first, second]).extract(b"%PDF") == "Accionante: Juan"

    def test_raises_with_every_reason_when_all_fail(self, empty_pdf_bytes: bytes) -> None:
        extractor = FallbackPdfExtractor([PdfPlumberAdapter(), PyMuPdfAdapter()])

        with pytest.raises(PdfExtractionError, match="no extractable text; PDF contains"):
            extractor.extract(empty_pdf_bytes)

    def test_requires_an_extractor(self) -> None:
        with pytest.raises(ValueError):
            FallbackPdfExtractor([])

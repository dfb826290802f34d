from tutela_intake.config.settings import Settings
from tutela_intake.pdf.base import BasePdfExtractor
from tutela_intake.pdf.fallback_adapter import FallbackPdfExtractor
from tutela_intake.pdf.pdfplumber_adapter import PdfPlumberAdapter
from tutela_intake.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfExtractorFactory:
    """Builds the text extractor for ``settings.pdf_engine``.

    "auto" chains every adapter in ADAPTERS order.
    """

    ADAPTERS: dict[str, type[BasePdfExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        engine = settings.pdf_engine.lower()
        max_pages = settings.pdf_max_pages
        if engine == "auto":
            return FallbackPdfExtractor(
                [adapter_cls(max_pages=max_pages) for adapter_cls in cls.ADAPTERS.values()]
            )
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {['auto', *cls.ADAPTERS]}"
            )
        return adapter_cls(max_pages=max_pages)

from typing import ClassVar

from tutela_intake.config.settings import Settings
from tutela_intake.extraction.base import BaseExtractionEngine
from tutela_intake.extraction.example_engine import ExampleExtractionEngine
from tutela_intake.extraction.llm_engine import LlmExtractionEngine
from tutela_intake.extraction.openai_client_adapter import OpenAIClientAdapter
from tutela_intake.pdf.factory import PdfExtractorFactory


class ExtractionEngineFactory:
    """Creates the extraction engine named by ``settings.extraction_engine``."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseExtractionEngine:
        provider = settings.extraction_engine.lower()
        if provider == "example":
            return ExampleExtractionEngine()
        client = OpenAIClientAdapter(
            api_key=settings.extraction_openai_api_key,
            timeout_seconds=settings.extraction_openai_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )
        return LlmExtractionEngine(
            pdf_extractor=PdfExtractorFactory.create(settings),
            client=client,
            model=settings.extraction_openai_model_name,
            temperature=settings.extraction_openai_temperature,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        configured = settings.extraction_openai_base_url.strip()
        if provider == "openai":
            return configured or None
        if provider == "openai_compatible":
            if not configured:
                raise ValueError(
                    "extraction_openai_base_url is required for "
                    "extraction_engine=openai_compatible"
                )
            return configured
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return configured or default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown extraction engine '{provider}'. Choose from: {supported}"
        )

"""AI-powered tutela metadata extraction."""

import json
from pathlib import Path

from tutela_intake.extraction.base import BaseExtractionEngine
from tutela_intake.extraction.client_base import BaseExtractionClient, ExtractionRequest
from tutela_intake.extraction.exceptions import ExtractionError
from tutela_intake.extraction.prompt_loader import load_prompt_assets
from tutela_intake.extraction.validator import validate_and_build
from tutela_intake.intake.models import CaseMetadata
from tutela_intake.logging.logger import Log
from tutela_intake.pdf.base import BasePdfExtractor
from tutela_intake.pdf.exceptions import PdfExtractionError

DEFAULT_SYSTEM_PROMPT = (
    "You extract case metadata from Colombian tutela filings and answer only with JSON."
)


class LlmExtractionEngine(BaseExtractionEngine):
    """Reads the PDF text and asks a chat model for the case metadata."""

    def __init__(
        self,
        *,
        pdf_extractor: BasePdfExtractor,
        client: BaseExtractionClient,
        model: str,
        temperature: float = 0.0,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self._pdf_extractor = pdf_extractor
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = system_prompt
        self._prompt = load_prompt_assets(prompt_template_path, json_schema_path)

    def extract(self, document_bytes: bytes) -> CaseMetadata:
        try:
            text = self._pdf_extractor.extract(document_bytes)
        except PdfExtractionError as exc:
            raise ExtractionError(f"Could not read document text: {exc}") from exc
        Log.debug(f"Extracted {len(text)} chars of document text for the model")

        raw_response = self._client.complete(
            ExtractionRequest(
                model=self._model,
                temperature=self._temperature,
                system_prompt=self._system_prompt,
                user_prompt=self._prompt.render(text),
                json_schema=self._prompt.schema,
            )
        )
        Log.debug(f"AI raw response:\n{raw_response}")

        metadata = validate_and_build(self._parse_json(raw_response))
        Log.info(f"Extracted case metadata for case {metadata.case_number}")
        return metadata

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ExtractionError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ExtractionError("JSON response must be an object")
        return parsed

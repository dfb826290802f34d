import json
from dataclasses import dataclass
from pathlib import Path

from tutela_intake.extraction.exceptions import ExtractionError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"
_PLACEHOLDERS = ("{document_text}", "{json_schema}")


@dataclass(frozen=True)
class PromptAssets:
    """The prompt template and the JSON schema the provider must answer with."""

    template: str
    schema_text: str
    schema: dict[str, object]

    def render(self, document_text: str) -> str:
        return self.template.format(document_text=document_text, json_schema=self.schema_text)


def load_prompt_assets(
    template_path: Path | None = None,
    schema_path: Path | None = None,
) -> PromptAssets:
    """Load and check the prompt template and JSON schema.

    Defaults to the bundled extraction_prompt.txt and extraction_schema.json.

    Raises:
        ExtractionError: if a file cannot be read, the template lacks a
            placeholder or the schema is not a JSON object.
    """
    template = _read(
        template_path or _DEFAULT_PROMPT_DIR / "extraction_prompt.txt", "prompt template"
    )
    missing = [p for p in _PLACEHOLDERS if p not in template]
    if missing:
        raise ExtractionError(f"Prompt template is missing placeholders: {', '.join(missing)}")

    schema_text = _read(
        schema_path or _DEFAULT_PROMPT_DIR / "extraction_schema.json", "JSON schema"
    )
    try:
        schema = json.loads(schema_text)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"JSON schema is not valid JSON: {exc}") from exc
    if not isinstance(schema, dict):
        raise ExtractionError("JSON schema must be an object")
    return PromptAssets(template=template, schema_text=schema_text, schema=schema)


def _read(path: Path, what: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ExtractionError(f"Failed to load {what}: {exc}") from exc

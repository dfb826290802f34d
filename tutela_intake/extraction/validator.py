"""Checks a parsed provider response and builds CaseMetadata from it."""

from typing import Any

from tutela_intake.extraction.exceptions import ExtractionValidationError
from tutela_intake.intake.models import REQUIRED_METADATA_FIELDS, CaseMetadata

_MAX_FIELD_LENGTH = 2000


def validate_and_build(data: dict[str, Any]) -> CaseMetadata:
    """Validate raw parsed JSON and build a CaseMetadata candidate.

    Every required field must be a non-empty string. Surrounding whitespace
    is stripped and internal runs of whitespace are collapsed.

    Raises:
        ExtractionValidationError: on any validation failure.
    """
    values: dict[str, str] = {}
    for name in REQUIRED_METADATA_FIELDS:
        values[name] = _require_text(data, name)
    return CaseMetadata(**values)


def _require_text(data: dict[str, Any], name: str) -> str:
    if name not in data:
        raise ExtractionValidationError(f"Missing required field: {name}")
    raw = data[name]
    if not isinstance(raw, str):
        raise ExtractionValidationError(f"'{name}' must be a string")
    text = " ".join(raw.split())
    if not text:
        raise ExtractionValidationError(f"'{name}' must be a non-empty string")
    if len(text) > _MAX_FIELD_LENGTH:
        raise ExtractionValidationError(
            f"'{name}' is too long: {len(text)} chars (max {_MAX_FIELD_LENGTH})"
        )
    return text

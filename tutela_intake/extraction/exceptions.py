class ExtractionError(Exception):
    """Raised when case metadata cannot be extracted from a document."""


class ExtractionValidationError(ExtractionError):
    """Raised when the engine's candidate does not have the required shape."""


class ExtractionNetworkError(ExtractionError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""

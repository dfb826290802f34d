from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ExtractionRequest:
    """One structured-output chat request for case metadata."""

    model: str
    temperature: float
    system_prompt: str
    user_prompt: str
    json_schema: dict[str, object]
    schema_name: str = "tutela_metadata"


class BaseExtractionClient(ABC):
    """Contract for chat providers that answer with schema-shaped JSON."""

    @abstractmethod
    def complete(self, request: ExtractionRequest) -> str:
        """Send the request and return the raw JSON text of the answer.

        Raises:
            ExtractionNetworkError: for transient provider failures.
            ExtractionError: when the provider refuses or rejects the request.
        """

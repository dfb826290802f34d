import httpx
import openai

from tutela_intake.extraction.client_base import BaseExtractionClient, ExtractionRequest
from tutela_intake.extraction.exceptions import ExtractionError, ExtractionNetworkError

# 4xx statuses that may succeed on a later re-extract.
_TRANSIENT_STATUSES = frozenset({408, 409, 429})


class OpenAIClientAdapter(BaseExtractionClient):
    """Structured-output client for OpenAI and OpenAI-compatible chat APIs.

    Retries are left to the operator (re-extract), so the SDK's own retry
    loop is disabled.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )

    def complete(self, request: ExtractionRequest) -> str:
        try:
            response = self._client.chat.completions.create(
                model=request.model,
                temperature=request.temperature,
                response_format=_response_format(request),
                messages=[
                    {"role": "system", "content": request.system_prompt},
                    {"role": "user", "content": request.user_prompt},
                ],
            )
        except (openai.APIConnectionError, httpx.TransportError) as exc:
            raise ExtractionNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIStatusError as exc:
            if exc.status_code in _TRANSIENT_STATUSES or exc.status_code >= 500:
                raise ExtractionNetworkError(
                    f"AI provider unavailable (HTTP {exc.status_code}): {exc}"
                ) from exc
            raise ExtractionError(
                f"AI provider rejected the request (HTTP {exc.status_code}): {exc}"
            ) from exc
        except openai.APIError as exc:
            raise ExtractionError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise ExtractionError("AI returned no choices")
        choice = response.choices[0]
        refusal = getattr(choice.message, "refusal", None)
        if refusal:
            raise ExtractionError(f"AI refused to extract the case data: {refusal}")
        if choice.finish_reason == "length":
            raise ExtractionError("AI response was cut off before the JSON was complete")
        if not choice.message.content:
            raise ExtractionError("AI returned empty response")
        return choice.message.content


def _response_format(request: ExtractionRequest) -> dict[str, object]:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": request.schema_name,
            "strict": True,
            "schema": request.json_schema,
        },
    }

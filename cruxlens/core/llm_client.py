"""Structured-output LLM client and its process-wide lifecycle.

The client is configured once at process start with ``init_llm_client``
and torn down with ``close_llm_client``. Request handling code only ever
calls ``get_llm_client``, which fails with ``ConfigurationError`` when the
lifecycle has not been started.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from cruxlens.core.config import Settings
from cruxlens.core.exceptions import APIClientError, ConfigurationError
from cruxlens.core.http_client import OpenAIHTTPClient
from cruxlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class ModelParams:
    """Per-stage model parameters; unset values fall back to client defaults."""
    model: Optional[str] = None
    max_output_tokens: Optional[int] = None
    temperature: Optional[float] = None


def extract_output_text(data: Optional[Dict[str, Any]]) -> str:
    """Pull the generated text out of a Responses API payload."""
    if not isinstance(data, dict):
        return ""

    output_text = data.get("output_text")
    if isinstance(output_text, str) and output_text:
        return output_text.strip()

    output = data.get("output")
    if isinstance(output, list):
        parts = []
        for item in output:
            if not isinstance(item, dict):
                continue
            for content in item.get("content") or []:
                if isinstance(content, dict) and isinstance(content.get("text"), str):
                    parts.append(content["text"])
        return "".join(parts).strip()

    return ""


class StructuredOutputClient:
    """Client for schema-constrained generation via the OpenAI Responses API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-5-nano",
        max_output_tokens: int = 8000,
        timeout: int = 120,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the structured output client.

        Args:
            api_key: OpenAI API key
            base_url: API base URL
            model: Default model name
            max_output_tokens: Default output token budget
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        if not api_key or not api_key.strip():
            raise ConfigurationError(
                "api_key required for structured output generation. "
                "Please set OPENAI_API_KEY environment variable."
            )
        self.model = model
        self.max_output_tokens = max_output_tokens
        # Generation failures are surfaced to the orchestrator, never retried here
        self.client = OpenAIHTTPClient(
            api_key=api_key.strip(),
            base_url=base_url,
            timeout=timeout,
            max_retries=1,
            transport=transport,
        )
        LOGGER.info(f"Initialized structured output client with model {self.model}")

    async def invoke(
        self,
        instructions: str,
        input_text: str,
        output_schema: Dict[str, Any],
        schema_name: str,
        model_params: Optional[ModelParams] = None,
    ) -> str:
        """Run one schema-constrained generation.

        Args:
            instructions: System-level instructions for the stage
            input_text: User input (plan text, context, prior stage output)
            output_schema: Strict JSON schema the output must satisfy
            schema_name: Identifier for the schema
            model_params: Optional model overrides

        Returns:
            Raw generated text (expected to be JSON)

        Raises:
            APIClientError: If the call fails or returns no text
        """
        params = model_params or ModelParams()
        payload: Dict[str, Any] = {
            "model": params.model or self.model,
            "instructions": instructions,
            "input": [{"role": "user", "content": input_text}],
            "max_output_tokens": params.max_output_tokens or self.max_output_tokens,
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "schema": output_schema,
                    "strict": True,
                }
            },
        }
        if params.temperature is not None:
            payload["temperature"] = params.temperature

        data = await self.client.call_api("/responses", method="POST", payload=payload)
        output_text = extract_output_text(data)
        if not output_text:
            raise APIClientError(f"OpenAI returned an empty response for schema {schema_name}")
        return output_text


_llm_client: Optional[StructuredOutputClient] = None


def init_llm_client(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> StructuredOutputClient:
    """Configure the process-wide generation client.

    Raises:
        ConfigurationError: If the API key is missing
    """
    global _llm_client
    _llm_client = StructuredOutputClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_api_base_url,
        model=settings.openai.model,
        max_output_tokens=settings.openai.max_output_tokens,
        timeout=settings.openai.timeout,
        transport=transport,
    )
    return _llm_client


def get_llm_client() -> StructuredOutputClient:
    """Return the configured generation client.

    Raises:
        ConfigurationError: If init_llm_client has not been called
    """
    if _llm_client is None:
        raise ConfigurationError("LLM client is not initialized; call init_llm_client() at startup")
    return _llm_client


def close_llm_client() -> None:
    """End the generation client lifecycle."""
    global _llm_client
    _llm_client = None

"""LLM client — HTTP connection to a text-generation backend.

Every agent in the room talks to the model through a callable matching:

    async def __call__(self, stage: str, prompt: str, sampling: SamplingConfig) -> str: ...

`stage` identifies which agent is calling (e.g. "planner", "dialogue").
The implementation may use it for logging or routing; the simplest
implementation ignores it.

Two implementations are provided:

    HttpLLM   — real HTTP client, supports OpenAI-compatible chat backends
                 and KoboldCpp. Selected by provider_format.
    EchoLLM   — returns the prompt back unchanged. Useful for smoke-testing
                 the wiring without a running model.

Production code constructs an HttpLLM from config and hands it to an
AgentClient. Tests use StubLLM (defined in the test helpers) instead.
"""

from __future__ import annotations

import logging
from typing import Literal, Protocol

import httpx

from writers_room.models import SamplingConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol — every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str, sampling: SamplingConfig) -> str: ...


# ---------------------------------------------------------------------------
# HttpLLM — connects to a real backend
# ---------------------------------------------------------------------------

ProviderFormat = Literal["openai", "koboldcpp"]


class HttpLLM:
    """Async HTTP client for text-generation backends.

    Supported formats:
      "openai"     — POST /v1/chat/completions {"model": ..., "messages": [...]}
                     Response: {"choices": [{"message": {"content": "..."}}]}
      "koboldcpp"  — POST /api/v1/generate     {"prompt": ...}
                     Response: {"results": [{"text": "..."}]}

    Args:
        provider_url:       Base URL of the backend, e.g. "http://localhost:8080".
        api_key:            Bearer token, or empty string if not required.
        provider_format:    Wire format to use. Defaults to "openai".
        model:              Model identifier, used only by the openai format.
        structured_outputs: Ask an openai-format backend for a JSON object
                            response on structured stages.
        timeout:            HTTP timeout in seconds. Defaults to 120.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "openai",
        model: str = "",
        structured_outputs: bool = False,
        timeout: float = 120.0,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._structured = structured_outputs
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(self, stage: str, prompt: str, sampling: SamplingConfig) -> tuple[str, dict]:
        """Return (url, body) for the configured format."""
        if self._format == "koboldcpp":
            url = f"{self._base_url}/api/v1/generate"
            body: dict = {"prompt": prompt, "temperature": sampling.temperature}
            if sampling.max_output_tokens:
                body["max_length"] = sampling.max_output_tokens
            return url, body

        # openai (default)
        url = f"{self._base_url}/v1/chat/completions"
        body = {
            "messages": [{"role": "user", "content": prompt}],
            "temperature": sampling.temperature,
        }
        if self._model:
            body["model"] = self._model
        if sampling.max_output_tokens:
            body["max_tokens"] = sampling.max_output_tokens
        if self._structured and stage != "dialogue":
            body["response_format"] = {"type": "json_object"}
        return url, body

    def _parse_response(self, data: dict) -> str:
        """Extract the completion text from the response body."""
        if self._format == "koboldcpp":
            results = data.get("results")
            if not results or "text" not in results[0]:
                raise LLMError("Unexpected response format from KoboldCpp backend")
            return results[0]["text"]

        choices = data.get("choices")
        if not choices or not isinstance(choices[0].get("message"), dict):
            raise LLMError("Unexpected response format from OpenAI-compatible backend")
        content = choices[0]["message"].get("content")
        if content is None:
            raise LLMError("Unexpected response format from OpenAI-compatible backend")
        return content

    async def __call__(self, stage: str, prompt: str, sampling: SamplingConfig) -> str:
        url, body = self._build_request(stage, prompt, sampling)
        logger.debug("llm call stage=%s url=%s prompt_len=%d", stage, url, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"LLM backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e

        text = self._parse_response(resp.json())
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text


# ---------------------------------------------------------------------------
# EchoLLM — returns the prompt unchanged; useful for wiring smoke tests
# ---------------------------------------------------------------------------

class EchoLLM:
    """Returns the prompt text as-is. No network calls.

    The output won't be valid JSON for structured stages; tests use a
    stub LLM when they need controlled responses.
    """

    async def __call__(self, stage: str, prompt: str, sampling: SamplingConfig) -> str:
        logger.debug("EchoLLM stage=%s prompt_len=%d", stage, len(prompt))
        return prompt


# ---------------------------------------------------------------------------
# LLMError — raised by HttpLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""

"""
LLM client abstraction.

Provides a unified interface for the text-generation collaborator. The
default implementation talks to an Ollama-compatible `/api/chat` endpoint
over HTTP with bounded, exponentially backed-off retries.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import BaseModel, Field

from unified_interview.config import get_settings
from unified_interview.models.response_parser import extract_json

logger = logging.getLogger(__name__)


class Message(BaseModel):
    """A message in a conversation."""

    role: str = Field(..., description="Role of the speaker (system, user, assistant)")
    content: str = Field(..., description="Message content")


class LLMResponse(BaseModel):
    """Response from an LLM."""

    content: str = Field(..., description="Generated text content")
    finish_reason: str = Field(default="stop", description="Reason for completion")
    usage: dict[str, int] = Field(
        default_factory=dict,
        description="Token usage information",
    )
    model: str = Field(default="", description="Model used for generation")


class CollaboratorUnavailableError(Exception):
    """Raised when the text-generation service cannot produce a response."""

    def __init__(self, message: str, status_code: int | None = None, attempts: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.attempts = attempts


class LLMClientBase(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    async def chat(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Generate a chat completion.

        Args:
            messages: Conversation history.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens to generate.
            **kwargs: Additional model-specific parameters.

        Returns:
            Generated response.

        Raises:
            CollaboratorUnavailableError: If no response could be obtained.
        """
        ...

    async def chat_with_json(
        self,
        messages: list[Message],
        schema: dict[str, Any] | None = None,
        temperature: float | None = 0.2,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Generate a chat completion with JSON structured output.

        Args:
            messages: Conversation history.
            schema: Optional JSON schema for expected output.
            temperature: Sampling temperature (lower for more deterministic).
            **kwargs: Additional parameters.

        Returns:
            Parsed JSON object, or empty dict if none could be recovered.

        Raises:
            CollaboratorUnavailableError: If the underlying chat call fails.
        """
        instruction = "You must respond with valid JSON only. No additional text or explanation."
        if schema:
            instruction += f" Your response must match this JSON schema: {json.dumps(schema)}"
        augmented_messages = [Message(role="system", content=instruction)] + messages

        response = await self.chat(augmented_messages, temperature=temperature, **kwargs)
        if not response.content:
            logger.warning("JSON chat returned empty content")
            return {}

        return extract_json(response.content)


class LLMClient(LLMClientBase):
    """
    HTTP client for an Ollama-compatible chat endpoint.

    Each request is bounded by its own timeout. Failed attempts (network
    errors, timeouts, non-2xx statuses, empty bodies) are retried with
    exponential backoff before CollaboratorUnavailableError is raised.
    """

    def __init__(
        self,
        model: str | None = None,
        base_url: str | None = None,
        max_retries: int | None = None,
        timeout: float | None = None,
        retry_backoff: float | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the LLM client.

        Args:
            model: Model name (defaults to settings).
            base_url: Service base URL (defaults to settings).
            max_retries: Extra attempts after a failure.
            timeout: Timeout in seconds per request.
            retry_backoff: Base backoff delay in seconds.
            max_tokens: Default maximum tokens per request.
            temperature: Default sampling temperature.
            http_client: Pre-built httpx client (mainly for tests).
        """
        settings = get_settings()
        self._model = model or settings.llm_model_name
        self._base_url = base_url or settings.llm_base_url
        self._max_retries = settings.llm_max_retries if max_retries is None else max_retries
        self._timeout = timeout or settings.llm_timeout
        self._retry_backoff = settings.llm_retry_backoff if retry_backoff is None else retry_backoff
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = settings.llm_temperature if temperature is None else temperature
        self._client = http_client

        logger.info(f"Initialized LLM client with model: {self._model} at {self._base_url}")

    @property
    def model(self) -> str:
        """Get the model name."""
        return self._model

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _build_payload(
        self,
        messages: list[Message],
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
            },
        }

    async def chat(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Generate a chat completion.

        Args:
            messages: Conversation history.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens to generate.
            **kwargs: `model` overrides the configured model.

        Returns:
            Generated response with non-empty content.

        Raises:
            CollaboratorUnavailableError: After all retries are exhausted.
        """
        model = kwargs.get("model") or self._model
        payload = self._build_payload(
            messages,
            model=model,
            temperature=self._temperature if temperature is None else temperature,
            max_tokens=max_tokens or self._max_tokens,
        )
        client = await self._get_client()

        last_error: CollaboratorUnavailableError | None = None
        attempts = 0

        while attempts <= self._max_retries:
            if attempts > 0:
                delay = self._retry_backoff * (2 ** (attempts - 1))
                logger.debug(f"Retrying LLM request in {delay:.2f}s")
                await asyncio.sleep(delay)
            attempts += 1

            try:
                response = await client.post("/api/chat", json=payload, timeout=self._timeout)
                response.raise_for_status()
                data = response.json()
            except httpx.TimeoutException:
                logger.warning(f"LLM request timed out after {self._timeout}s (attempt {attempts})")
                last_error = CollaboratorUnavailableError(
                    f"LLM request timed out after {self._timeout} seconds",
                    attempts=attempts,
                )
                continue
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                logger.warning(f"LLM request failed with status {status} (attempt {attempts})")
                last_error = CollaboratorUnavailableError(
                    f"LLM service returned {status}",
                    status_code=status,
                    attempts=attempts,
                )
                continue
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"LLM request error (attempt {attempts}): {e}")
                last_error = CollaboratorUnavailableError(str(e), attempts=attempts)
                continue

            message = data.get("message") if isinstance(data, dict) else None
            if not isinstance(message, dict):
                logger.warning(f"LLM returned a malformed payload (attempt {attempts})")
                last_error = CollaboratorUnavailableError("LLM returned a malformed payload", attempts=attempts)
                continue

            content = message.get("content")
            content = content.strip() if isinstance(content, str) else ""
            if not content:
                logger.warning(f"LLM returned empty content (attempt {attempts})")
                last_error = CollaboratorUnavailableError("LLM returned empty content", attempts=attempts)
                continue

            usage = {
                key: int(data[key])
                for key in ("prompt_eval_count", "eval_count")
                if isinstance(data.get(key), int)
            }
            logger.debug(f"LLM response length: {len(content)} chars")
            return LLMResponse(
                content=content,
                finish_reason=str(data.get("done_reason") or "stop"),
                usage=usage,
                model=str(data.get("model") or model),
            )

        raise last_error or CollaboratorUnavailableError("LLM failed after all retries", attempts=attempts)

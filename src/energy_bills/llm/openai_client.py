"""OpenAI LLM client (api.openai.com or an Azure OpenAI deployment)."""
from __future__ import annotations

import asyncio
import time

import openai
import structlog

from .base import LLMClient, LLMResponse

logger = structlog.get_logger(__name__)

MAX_RETRIES = 3
RETRY_DELAYS = [1.0, 2.0, 4.0]

# APITimeoutError is a subclass of APIConnectionError
RETRYABLE_EXCEPTIONS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.InternalServerError,
)


class OpenAIClient(LLMClient):
    """LLM client for GPT vision models.

    When ``azure_endpoint`` is given the client talks to an Azure OpenAI
    resource and ``model`` is the deployment name.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        azure_endpoint: str = "",
        timeout: int = 120,
        client: openai.AsyncOpenAI | None = None,
    ):
        self._model = model
        self._timeout = timeout
        self._provider = "azure_openai" if azure_endpoint else "openai"

        if client is not None:
            self._client = client
        elif azure_endpoint:
            self._client = openai.AsyncAzureOpenAI(
                api_key=api_key,
                azure_endpoint=azure_endpoint,
                api_version="2024-06-01",
                timeout=float(timeout),
                max_retries=0,
            )
        else:
            if not api_key:
                raise ValueError("OpenAI API key is not configured (BILLS_OPENAI_API_KEY / OPENAI_API_KEY)")
            self._client = openai.AsyncOpenAI(api_key=api_key, timeout=float(timeout), max_retries=0)

    async def complete_vision(
        self,
        system_prompt: str,
        user_prompt: str,
        images: list[str],
        *,
        temperature: float = 0.0,
        max_tokens: int = 2000,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Vision completion with base64-encoded PNG pages."""
        user_content: list[dict] = [{"type": "text", "text": user_prompt}]
        for base64_str in images:
            user_content.append({
                "type": "image_url",
                "image_url": {
                    "url": f"data:image/png;base64,{base64_str}",
                    "detail": "high",
                },
            })

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ]

        kwargs: dict = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        return await self._call_with_retry(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )

    def get_model_name(self) -> str:
        return f"{self._model} ({self._provider})"

    async def _call_with_retry(
        self,
        messages: list[dict],
        temperature: float,
        max_tokens: int,
        **kwargs,
    ) -> LLMResponse:
        """Call the Chat Completions API with exponential backoff retries."""
        last_exception: Exception | None = None

        for attempt in range(MAX_RETRIES + 1):
            try:
                start = time.monotonic()
                response = await self._client.chat.completions.create(
                    model=self._model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    **kwargs,
                )
                elapsed_ms = int((time.monotonic() - start) * 1000)

                if not response.choices:
                    return LLMResponse(content="", model=response.model or self._model, latency_ms=elapsed_ms)

                choice = response.choices[0]
                input_tokens = 0
                output_tokens = 0
                if response.usage is not None:
                    input_tokens = response.usage.prompt_tokens
                    output_tokens = response.usage.completion_tokens

                logger.info(
                    "openai_call_completed",
                    model=self._model,
                    latency_ms=elapsed_ms,
                    input_tokens=input_tokens,
                    output_tokens=output_tokens,
                )
                return LLMResponse(
                    content=choice.message.content or "",
                    model=response.model or self._model,
                    input_tokens=input_tokens,
                    output_tokens=output_tokens,
                    finish_reason=choice.finish_reason or "",
                    latency_ms=elapsed_ms,
                )

            except RETRYABLE_EXCEPTIONS as exc:
                last_exception = exc
                if attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[attempt]
                    logger.warning(
                        "openai_api_retry",
                        attempt=attempt + 1,
                        delay=delay,
                        error=str(exc),
                        model=self._model,
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(
                        "openai_api_exhausted_retries",
                        attempts=MAX_RETRIES + 1,
                        error=str(exc),
                        model=self._model,
                    )

        raise last_exception  # type: ignore[misc]

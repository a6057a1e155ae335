"""
LLM Client Wrapper - Unified async interface to LiteLLM.

Provides a consistent API for calling different LLM providers through LiteLLM,
with JSON structured output, tool calling, retries on transient errors and
fallback models.
"""

import json
import time
from typing import Any, Dict, List, Optional, Type

import litellm
from pydantic import BaseModel, Field
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..exceptions import LLMError
from ..utils.logging import get_logger

# Errors worth retrying against the same model
TRANSIENT_ERRORS = (
    TimeoutError,
    ConnectionError,
    litellm.exceptions.Timeout,
    litellm.exceptions.APIConnectionError,
    litellm.exceptions.RateLimitError,
    litellm.exceptions.ServiceUnavailableError,
)


class LLMResponse(BaseModel):
    """Normalized completion result."""

    content: Any = None
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: float = 0.0
    finish_reason: Optional[str] = None
    tool_calls: List[Dict[str, Any]] = Field(default_factory=list)


class LLMClient:
    """
    Unified async LLM client using LiteLLM for multi-provider support.

    Example:
        client = LLMClient(default_model="gemini/gemini-2.5-flash")

        response = await client.acomplete(
            messages=[{"role": "user", "content": "Hello"}],
            feature="chat",
        )
    """

    def __init__(
        self,
        default_model: str = "gemini/gemini-2.5-flash",
        api_key: Optional[str] = None,
        fallback_models: Optional[List[str]] = None,
        max_retries: int = 3,
        timeout: float = 60,
    ):
        """
        Initialize LLM client.

        Args:
            default_model: Default model to use (LiteLLM format: "provider/model")
            api_key: Optional API key (can also use provider env vars)
            fallback_models: Models tried in order if the primary fails
            max_retries: Attempts per model on transient failures
            timeout: Request timeout in seconds
        """
        self.default_model = default_model
        self.api_key = api_key
        self.fallback_models = fallback_models or []
        self.max_retries = max_retries
        self.timeout = timeout
        self.wait = wait_exponential(multiplier=1, min=2, max=10)
        self.logger = get_logger(__name__)

    async def _call(self, **completion_kwargs: Any) -> Any:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=self.wait,
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        ):
            with attempt:
                return await litellm.acompletion(**completion_kwargs)

    async def _call_with_fallbacks(self, model: str, **completion_kwargs: Any) -> tuple[Any, str]:
        models = [model] + [m for m in self.fallback_models if m != model]
        last_error: Optional[Exception] = None

        for candidate in models:
            try:
                kwargs = dict(completion_kwargs, model=candidate, timeout=self.timeout)
                if self.api_key:
                    kwargs["api_key"] = self.api_key
                return await self._call(**kwargs), candidate
            except Exception as e:
                last_error = e
                self.logger.warning(
                    "llm_call_failed", model=candidate, error_type=type(e).__name__, error=str(e)
                )

        status_code = getattr(last_error, "status_code", None)
        raise LLMError(
            f"LLM completion failed: {last_error}",
            details={
                "model": model,
                "error_type": type(last_error).__name__,
                "fallbacks_tried": self.fallback_models,
            },
            status_code=status_code if isinstance(status_code, int) else None,
        ) from last_error

    async def _complete(
        self,
        model: Optional[str],
        messages: List[Dict[str, Any]],
        temperature: float,
        max_tokens: Optional[int],
        **extra: Any,
    ) -> tuple[Any, str, float]:
        """Run one completion; returns (raw response, model used, start time)."""
        start_time = time.perf_counter()
        completion_kwargs: Dict[str, Any] = {"messages": messages, "temperature": temperature}
        if max_tokens:
            completion_kwargs["max_tokens"] = max_tokens
        completion_kwargs.update(extra)

        response, used_model = await self._call_with_fallbacks(
            model or self.default_model, **completion_kwargs
        )
        return response, used_model, start_time

    def _to_response(
        self,
        feature: str,
        response: Any,
        used_model: str,
        start_time: float,
        content: Any,
        tool_calls: Optional[List[Dict[str, Any]]] = None,
    ) -> LLMResponse:
        usage = getattr(response, "usage", None)
        input_tokens = (usage.prompt_tokens or 0) if usage else 0
        output_tokens = (usage.completion_tokens or 0) if usage else 0
        latency_ms = (time.perf_counter() - start_time) * 1000

        self.logger.info(
            "llm_usage",
            feature=feature,
            model=used_model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            tool_calls=len(tool_calls or []),
            latency_ms=round(latency_ms, 2),
        )
        return LLMResponse(
            content=content,
            model=used_model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            latency_ms=latency_ms,
            finish_reason=response.choices[0].finish_reason,
            tool_calls=tool_calls or [],
        )

    async def acomplete(
        self,
        messages: List[Dict[str, Any]],
        model: Optional[str] = None,
        response_schema: Optional[Type[BaseModel]] = None,
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
        feature: str = "completion",
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Call the LLM with messages and optional JSON structured output.

        With ``response_schema`` the model is asked for JSON matching the
        schema and ``content`` is the decoded JSON object; validation against
        the schema is left to the caller.

        Raises:
            LLMError: If all models fail or the JSON cannot be decoded
        """
        if response_schema:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": response_schema.__name__,
                    "schema": response_schema.model_json_schema(),
                },
            }

        response, used_model, start_time = await self._complete(
            model, messages, temperature, max_tokens, **kwargs
        )
        content = response.choices[0].message.content

        if response_schema:
            try:
                content = json.loads(content or "")
            except json.JSONDecodeError as e:
                raise LLMError(
                    f"Response is not valid JSON for {response_schema.__name__}: {e}",
                    details={"model": used_model, "raw_content": (content or "")[:200]},
                ) from e

        return self._to_response(feature, response, used_model, start_time, content)

    async def acomplete_with_tools(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
        feature: str = "generation",
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Call the LLM with tool/function calling support.

        Returns:
            LLMResponse whose ``tool_calls`` are dicts with id, name and arguments

        Raises:
            LLMError: If all models fail or a tool call carries malformed arguments
        """
        if tools:
            kwargs["tools"] = tools

        response, used_model, start_time = await self._complete(
            model, messages, temperature, max_tokens, **kwargs
        )
        message = response.choices[0].message

        tool_calls = []
        for tc in getattr(message, "tool_calls", None) or []:
            try:
                arguments = json.loads(tc.function.arguments or "{}")
            except json.JSONDecodeError as e:
                raise LLMError(
                    f"Tool call '{tc.function.name}' has malformed arguments",
                    details={"model": used_model, "raw_arguments": tc.function.arguments},
                ) from e
            tool_calls.append({"id": tc.id, "name": tc.function.name, "arguments": arguments})

        return self._to_response(
            feature, response, used_model, start_time, message.content or "", tool_calls
        )

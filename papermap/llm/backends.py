"""LLM backend abstraction for the two cloud model providers.

Provides a unified interface for calling Claude on AWS Bedrock and Gemini
on Google (API key or Vertex AI) with a consistent response format.

Each backend handles provider-specific concerns:
- Client creation and timeout configuration
- Whether a separate system instruction is supported
- Response parsing and token counting
- Classifying its own errors as transient (retryable) or permanent

The invoker handles provider-agnostic concerns:
- Retry with exponential backoff
- Cancellation between attempts
- JSON extraction from the raw text
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass
class LLMCallResult:
    """Normalized response from any LLM backend."""

    content: str
    model_id: str
    input_tokens: int
    output_tokens: int
    duration_ms: int


# Error signals that mean "try again later" regardless of provider
TRANSIENT_MARKERS = (
    "throttlingexception",
    "serviceexception",
    "serviceunavailable",
    "toomanyrequests",
    "resource_exhausted",
    "unavailable",
    "overloaded",
)

CONNECT_TIMEOUT = 30.0
DEFAULT_READ_TIMEOUT = 300.0


def mentions_transient_error(error: BaseException) -> bool:
    text = f"{type(error).__name__} {error}".lower()
    return any(marker in text for marker in TRANSIENT_MARKERS)


@runtime_checkable
class ModelBackend(Protocol):
    """Protocol for LLM backend implementations."""

    @property
    def model_id(self) -> str: ...

    @property
    def supports_system_instruction(self) -> bool: ...

    def execute_sync(
        self,
        system_prompt: str,
        user_message: str,
        *,
        max_tokens: int,
        temperature: float,
        timeout: Optional[float] = None,
        label: str = "",
    ) -> LLMCallResult: ...

    def is_transient(self, error: BaseException) -> bool: ...


class BedrockClaudeBackend:
    """Anthropic Claude served through AWS Bedrock.

    SDK-level retries are disabled; the invoker owns the retry policy.
    """

    def __init__(
        self,
        model_id: str = "anthropic.claude-3-5-haiku-20241022-v1:0",
        *,
        aws_region: str = "us-east-1",
    ):
        self._model_id = model_id
        self._aws_region = aws_region
        self._client = None

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def supports_system_instruction(self) -> bool:
        return True

    def _get_client(self):
        if self._client is None:
            import httpx
            from anthropic import AnthropicBedrock

            self._client = AnthropicBedrock(
                aws_region=self._aws_region,
                max_retries=0,
                timeout=httpx.Timeout(
                    connect=CONNECT_TIMEOUT,
                    read=DEFAULT_READ_TIMEOUT,
                    write=60.0,
                    pool=60.0,
                ),
            )
        return self._client

    def execute_sync(
        self,
        system_prompt: str,
        user_message: str,
        *,
        max_tokens: int,
        temperature: float,
        timeout: Optional[float] = None,
        label: str = "",
    ) -> LLMCallResult:
        client = self._get_client()
        start_time = time.time()

        kwargs = {
            "model": self._model_id,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": user_message}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt
        if timeout is not None:
            kwargs["timeout"] = timeout

        logger.info(
            f"[{label}] Bedrock call: model={self._model_id}, "
            f"~{(len(system_prompt) + len(user_message)) // 4:,} input tokens, "
            f"max_tokens={max_tokens}"
        )
        response = client.messages.create(**kwargs)
        duration_ms = int((time.time() - start_time) * 1000)

        raw_text = ""
        for block in response.content:
            if hasattr(block, "text"):
                raw_text += block.text

        if not raw_text.strip():
            raise RuntimeError(f"[{label}] Empty response from {self._model_id}")

        logger.info(
            f"[{label}] Bedrock completed: {response.usage.input_tokens}+"
            f"{response.usage.output_tokens} tokens, {duration_ms}ms"
        )

        return LLMCallResult(
            content=raw_text.strip(),
            model_id=self._model_id,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            duration_ms=duration_ms,
        )

    def is_transient(self, error: BaseException) -> bool:
        import anthropic

        if isinstance(error, anthropic.RateLimitError):
            return True
        if isinstance(error, anthropic.APIStatusError):
            return error.status_code == 429 or error.status_code >= 500
        return mentions_transient_error(error)


class GeminiBackend:
    """Google Gemini backend.

    Uses an API key when one is configured, otherwise Vertex AI with the
    project's Application Default Credentials. Older Gemini 1.0 models do
    not accept a system instruction; the invoker folds it into the prompt.

    Requires google-genai package: pip install google-genai
    """

    def __init__(
        self,
        model_id: str = "gemini-2.5-flash",
        *,
        api_key: Optional[str] = None,
        project: Optional[str] = None,
        location: str = "us-central1",
    ):
        self._model_id = model_id
        self._api_key = api_key
        self._project = project
        self._location = location
        self._client = None

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def supports_system_instruction(self) -> bool:
        return not self._model_id.startswith("gemini-1.0")

    def _get_client(self):
        if self._client is None:
            from google import genai

            if self._api_key:
                self._client = genai.Client(api_key=self._api_key)
            elif self._project:
                self._client = genai.Client(
                    vertexai=True, project=self._project, location=self._location
                )
            else:
                raise RuntimeError(
                    "Neither GEMINI_API_KEY nor GCP_PROJECT_ID is set; cannot use Gemini."
                )
        return self._client

    def execute_sync(
        self,
        system_prompt: str,
        user_message: str,
        *,
        max_tokens: int,
        temperature: float,
        timeout: Optional[float] = None,
        label: str = "",
    ) -> LLMCallResult:
        from google import genai

        client = self._get_client()
        start_time = time.time()
        estimated_input_tokens = (len(system_prompt) + len(user_message)) // 4

        config_kwargs = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
        }
        if system_prompt:
            config_kwargs["system_instruction"] = system_prompt
        if timeout is not None:
            config_kwargs["http_options"] = genai.types.HttpOptions(
                timeout=max(1, int(timeout * 1000))
            )

        logger.info(
            f"[{label}] Gemini call: model={self._model_id}, "
            f"~{estimated_input_tokens:,} input tokens, max_tokens={max_tokens}"
        )
        response = client.models.generate_content(
            model=self._model_id,
            contents=user_message,
            config=genai.types.GenerateContentConfig(**config_kwargs),
        )
        duration_ms = int((time.time() - start_time) * 1000)

        raw_text = ""
        if response.candidates and response.candidates[0].content:
            for part in response.candidates[0].content.parts or []:
                if getattr(part, "thought", False):
                    continue
                raw_text += getattr(part, "text", "") or ""

        if not raw_text.strip():
            raise RuntimeError(f"[{label}] Empty response from {self._model_id}")

        usage = getattr(response, "usage_metadata", None)
        input_tokens = getattr(usage, "prompt_token_count", None) or estimated_input_tokens
        output_tokens = getattr(usage, "candidates_token_count", None) or len(raw_text) // 4

        logger.info(
            f"[{label}] Gemini completed: {input_tokens}+{output_tokens} tokens, "
            f"{duration_ms}ms"
        )

        return LLMCallResult(
            content=raw_text.strip(),
            model_id=self._model_id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
        )

    def is_transient(self, error: BaseException) -> bool:
        from google.genai import errors as genai_errors

        if isinstance(error, genai_errors.APIError):
            code = getattr(error, "code", None) or 0
            return code == 429 or code >= 500
        return mentions_transient_error(error)

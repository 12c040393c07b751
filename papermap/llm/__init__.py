"""Model access: provider backends, retrying invoker, JSON extraction."""

from papermap.llm.backends import (
    BedrockClaudeBackend,
    GeminiBackend,
    LLMCallResult,
    ModelBackend,
)
from papermap.llm.client import parse_model_json
from papermap.llm.factory import get_model_backend
from papermap.llm.invoker import ModelInvoker, RetryPolicy

__all__ = [
    "BedrockClaudeBackend",
    "GeminiBackend",
    "LLMCallResult",
    "ModelBackend",
    "ModelInvoker",
    "RetryPolicy",
    "get_model_backend",
    "parse_model_json",
]

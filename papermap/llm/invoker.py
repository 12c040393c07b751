"""Model invocation with retry, cancellation, and JSON extraction.

ModelInvoker.invoke() sends one prompt to a ModelBackend and returns the
JSON object found in the reply. Transient provider failures are retried
with exponential backoff (1s, 2s, ... between attempts); anything else is
raised immediately. Malformed JSON is never retried. Cancellation is
checked before each attempt and after each backoff wait.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from papermap.cancellation import CancellationToken
from papermap.config import Settings
from papermap.errors import ModelInvocationError
from papermap.llm.backends import ModelBackend
from papermap.llm.client import parse_model_json

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BASE_DELAY = 1.0
BACKOFF_MULTIPLIER = 2.0


def interruptible_sleep(seconds: float, token: CancellationToken) -> None:
    token.wait(seconds)


@dataclass
class RetryPolicy:
    """How many times to call, and how long to wait in between.

    `sleep` receives the delay and the request's cancellation token; tests
    swap it for a recorder so no real time passes.
    """

    max_attempts: int = MAX_ATTEMPTS
    base_delay: float = BASE_DELAY
    multiplier: float = BACKOFF_MULTIPLIER
    sleep: Callable[[float, CancellationToken], None] = field(default=interruptible_sleep)

    def delay_for(self, retry_number: int) -> float:
        """Delay before retry `retry_number` (1-based)."""
        return self.base_delay * (self.multiplier ** (retry_number - 1))


class ModelInvoker:
    """Calls one model backend on behalf of the action orchestrator."""

    def __init__(
        self,
        backend: ModelBackend,
        settings: Settings,
        policy: Optional[RetryPolicy] = None,
    ):
        self.backend = backend
        self.settings = settings
        self.policy = policy or RetryPolicy()

    @property
    def model_id(self) -> str:
        return self.backend.model_id

    def _compose(self, prompt: str, system_instruction: str) -> tuple[str, str]:
        if self.backend.supports_system_instruction or not system_instruction:
            return system_instruction, prompt
        return "", f"{system_instruction}\n\n{prompt}"

    def invoke(
        self,
        prompt: str,
        system_instruction: str = "",
        *,
        cancellation: Optional[CancellationToken] = None,
        label: str = "",
    ) -> dict[str, Any]:
        """Send a prompt and return the JSON object from the reply.

        Args:
            prompt: User message
            system_instruction: System prompt (folded into the user message
                for models that do not accept one)
            cancellation: Request token; None means never cancelled
            label: Log prefix

        Returns:
            Parsed JSON object

        Raises:
            ModelInvocationError: Permanent failure or retries exhausted
            ModelOutputParseError: Reply contained no JSON object
            InterruptedError: Request cancelled or deadline passed
        """
        token = cancellation or CancellationToken.never()
        system_prompt, user_message = self._compose(prompt, system_instruction)
        max_attempts = max(1, self.policy.max_attempts)
        last_error: Optional[BaseException] = None

        for attempt in range(max_attempts):
            if attempt > 0:
                delay = self.policy.delay_for(attempt)
                logger.warning(
                    f"[{label}] Retry {attempt}/{max_attempts - 1} after {delay}s "
                    f"(previous error: {last_error})"
                )
                self.policy.sleep(delay, token)

            if token.is_cancelled():
                raise InterruptedError(f"[{label}] Cancelled before attempt {attempt + 1}")

            try:
                result = self.backend.execute_sync(
                    system_prompt,
                    user_message,
                    max_tokens=self.settings.max_output_tokens,
                    temperature=self.settings.temperature,
                    timeout=token.remaining(),
                    label=label,
                )
            except InterruptedError:
                raise
            except Exception as e:
                last_error = e
                logger.error(f"[{label}] Attempt {attempt + 1} failed: {e}")
                # An SDK timeout after the deadline is a cancellation, not a model fault
                if token.is_cancelled():
                    raise InterruptedError(
                        f"[{label}] Deadline passed during attempt {attempt + 1}"
                    ) from e
                if not self.backend.is_transient(e):
                    raise ModelInvocationError(
                        f"[{label}] Model call failed (not retrying): {e}",
                        attempts=attempt + 1,
                        cause=e,
                    ) from e
                continue

            return parse_model_json(result.content, label=label)

        raise ModelInvocationError(
            f"[{label}] Failed after {max_attempts} attempts. Last error: {last_error}",
            attempts=max_attempts,
            cause=last_error,
        ) from last_error

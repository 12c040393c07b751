"""Exception hierarchy for PaperMap.

Four families, mapped to HTTP status codes by the API layer:
- InvalidInputError: malformed request, unknown backend (400)
- NotFoundError: document or node path absent (404)
- ModelInvocationError: permanent upstream model failure (502)
- PersistenceError: backend unreachable, conflicting create (500)

The tree resolver and the document stores report absence as return
values. These exceptions are raised by the layers that decide absence
is an error (the action orchestrator) or for genuine faults.
"""

from typing import Optional


class PaperMapError(Exception):
    """Base class for all PaperMap errors."""


# --- Invalid input ---


class InvalidInputError(PaperMapError, ValueError):
    """Request fields are missing or malformed."""


class UnknownBackendError(InvalidInputError):
    """Backend selector does not name a configured backend pair."""

    def __init__(self, selector: str, available: list[str]):
        self.selector = selector
        self.available = available
        super().__init__(
            f"Unknown backend: '{selector}'. Expected one of: {', '.join(available)}"
        )


class SubtreeDepthExceededError(InvalidInputError):
    """Subtree regeneration requested below the configured depth limit."""

    def __init__(self, depth: int, max_depth: int):
        self.depth = depth
        self.max_depth = max_depth
        super().__init__(
            f"Cannot remake subtree at depth {depth} (limit {max_depth})"
        )


# --- Not found ---


class NotFoundError(PaperMapError):
    """Addressed resource does not exist."""


class DocumentNotFoundError(NotFoundError):
    def __init__(self, doc_id: str):
        self.doc_id = doc_id
        super().__init__(f"Mindmap not found: {doc_id}")


class NodePathNotFoundError(NotFoundError):
    def __init__(self, doc_id: str, path: list):
        self.doc_id = doc_id
        self.path = path
        super().__init__(f"Node path not found in mindmap {doc_id}: {path}")


# --- Upstream model ---


class ModelInvocationError(PaperMapError):
    """Model call failed permanently (non-transient error or retries exhausted)."""

    def __init__(self, message: str, *, attempts: int = 1, cause: Optional[BaseException] = None):
        self.attempts = attempts
        self.cause = cause
        super().__init__(message)


class ModelOutputParseError(ModelInvocationError):
    """Model returned text from which no JSON object could be recovered."""

    def __init__(self, raw_text: str):
        self.raw_text = raw_text
        preview = raw_text[:200].replace("\n", " ")
        super().__init__(f"Could not parse JSON from model response: {preview!r}")


# --- Persistence ---


class PersistenceError(PaperMapError):
    """Backend store failed."""


class DocumentConflictError(PersistenceError):
    """Create was attempted with an identifier that already exists."""

    def __init__(self, doc_id: str):
        self.doc_id = doc_id
        super().__init__(f"Mindmap already exists: {doc_id}")


class MissingSourceTextError(PersistenceError):
    """Stored document has no extracted source text to prompt with."""

    def __init__(self, doc_id: str):
        self.doc_id = doc_id
        super().__init__(f"PDF text not found for mindmap {doc_id}")

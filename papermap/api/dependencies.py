"""Request-scoped dependencies and error translation for the API routes."""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Depends, HTTPException, Query, Request

from papermap.actions.orchestrator import MindmapActions
from papermap.backends import BackendPair, BackendRegistry
from papermap.cancellation import CancellationToken
from papermap.config import Settings
from papermap.errors import (
    InvalidInputError,
    ModelInvocationError,
    NotFoundError,
    PaperMapError,
    PersistenceError,
)
from papermap.prompts.registry import PromptRegistry

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_prompts(request: Request) -> PromptRegistry:
    return request.app.state.prompts


def get_backend_pair(
    request: Request,
    backend: Optional[str] = Query(
        default=None,
        description="Backend pair: 'aws' (DynamoDB + Bedrock) or 'gcp' (Firestore + Gemini)",
    ),
) -> BackendPair:
    registry: BackendRegistry = request.app.state.backends
    with error_responses("Failed to initialize backend"):
        return registry.resolve(backend)


def get_actions(
    pair: BackendPair = Depends(get_backend_pair),
    settings: Settings = Depends(get_settings),
    prompts: PromptRegistry = Depends(get_prompts),
) -> MindmapActions:
    return MindmapActions(pair.store, pair.invoker, settings, prompts)


def get_cancellation(settings: Settings = Depends(get_settings)) -> CancellationToken:
    return CancellationToken(timeout=settings.request_timeout_seconds)


def status_for(error: PaperMapError) -> int:
    if isinstance(error, InvalidInputError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ModelInvocationError):
        return 502
    if isinstance(error, PersistenceError):
        return 500
    return 500


@contextmanager
def error_responses(failure_message: str) -> Iterator[None]:
    """Translate PaperMap errors raised in the block into HTTPExceptions.

    Unexpected exceptions are logged with their traceback and surface as a
    500 carrying only failure_message.
    """
    try:
        yield
    except HTTPException:
        raise
    except PaperMapError as e:
        status_code = status_for(e)
        if status_code >= 500:
            logger.error(f"{failure_message}: {e}")
        else:
            logger.info(f"{failure_message}: {e}")
        raise HTTPException(status_code=status_code, detail=str(e)) from e
    except InterruptedError as e:
        logger.warning(f"{failure_message}: {e}")
        raise HTTPException(status_code=504, detail="Request deadline exceeded") from e
    except Exception as e:
        logger.exception(f"{failure_message}: {e}")
        raise HTTPException(status_code=500, detail=failure_message) from e

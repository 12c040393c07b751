"""Model backend factory.

Resolves a backend selector to the model provider of that backend pair.
"""

import logging
from typing import Union

from papermap.config import BACKEND_AWS, BACKEND_GCP, KNOWN_BACKENDS, Settings
from papermap.errors import UnknownBackendError
from papermap.llm.backends import BedrockClaudeBackend, GeminiBackend

logger = logging.getLogger(__name__)


def get_model_backend(
    selector: str, settings: Settings
) -> Union[BedrockClaudeBackend, GeminiBackend]:
    """Get the model backend for a backend selector.

    Args:
        selector: 'aws' (Claude on Bedrock) or 'gcp' (Gemini)
        settings: Application settings

    Returns:
        Backend instance for the selector

    Raises:
        UnknownBackendError: If selector is not recognized
    """
    if selector == BACKEND_AWS:
        return BedrockClaudeBackend(
            model_id=settings.bedrock_model_id,
            aws_region=settings.aws_region,
        )
    elif selector == BACKEND_GCP:
        return GeminiBackend(
            model_id=settings.gemini_model_id,
            api_key=settings.gemini_api_key,
            project=settings.gcp_project_id,
            location=settings.gcp_location,
        )
    else:
        raise UnknownBackendError(selector, list(KNOWN_BACKENDS))

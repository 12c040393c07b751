"""Document store factory.

Resolves a backend selector to the matching store implementation.
"""

import logging

from papermap.config import BACKEND_AWS, BACKEND_GCP, KNOWN_BACKENDS, Settings
from papermap.errors import UnknownBackendError
from papermap.persistence.base import DocumentStore
from papermap.persistence.dynamodb import DynamoDocumentStore
from papermap.persistence.firestore import FirestoreDocumentStore

logger = logging.getLogger(__name__)


def get_document_store(selector: str, settings: Settings) -> DocumentStore:
    """Build the document store for a backend selector.

    Args:
        selector: 'aws' (DynamoDB) or 'gcp' (Firestore)
        settings: Application settings

    Raises:
        UnknownBackendError: If selector is not recognized
    """
    if selector == BACKEND_AWS:
        return DynamoDocumentStore.from_settings(settings)
    elif selector == BACKEND_GCP:
        return FirestoreDocumentStore.from_settings(settings)
    else:
        raise UnknownBackendError(selector, list(KNOWN_BACKENDS))

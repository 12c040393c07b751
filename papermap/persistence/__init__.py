"""Mindmap persistence across DynamoDB and Firestore.

Both stores implement the DocumentStore protocol and normalize records on
read, so callers never see backend-specific casing or value types.
"""

from papermap.persistence.base import DocumentStore
from papermap.persistence.dynamodb import DynamoDocumentStore
from papermap.persistence.factory import get_document_store
from papermap.persistence.firestore import FirestoreDocumentStore

__all__ = [
    "DocumentStore",
    "DynamoDocumentStore",
    "FirestoreDocumentStore",
    "get_document_store",
]

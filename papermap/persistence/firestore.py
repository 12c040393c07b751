"""Firestore (document store) backend.

One Firestore document per mindmap, document id == mindmap id. Records
written by older clients may carry Timestamp values, differently cased
field names, or the tree as a JSON string; normalize_record() absorbs all
of that on read.
"""

import logging
from typing import Any, Optional

from google.api_core import exceptions as gexc

from papermap.errors import DocumentConflictError, PersistenceError
from papermap.mindmap.schemas import MindmapDocument
from papermap.persistence.base import build_new_record, build_update_fields
from papermap.persistence.normalize import normalize_record, sort_newest_first

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class FirestoreDocumentStore:
    """Mindmap store backed by a Firestore collection."""

    backend_name = "firestore"

    def __init__(self, collection: Any, timeout: float = DEFAULT_TIMEOUT):
        """Wrap a CollectionReference (or anything with the same methods)."""
        self._collection = collection
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "FirestoreDocumentStore":
        from google.cloud import firestore

        if not settings.gcp_project_id:
            raise PersistenceError("GCP_PROJECT_ID not set; cannot use the Firestore backend")
        client = firestore.Client(project=settings.gcp_project_id)
        logger.info(
            f"Firestore store initialized: project={settings.gcp_project_id}, "
            f"collection={settings.firestore_collection}"
        )
        return cls(client.collection(settings.firestore_collection))

    def create(self, fields: dict[str, Any]) -> str:
        record = build_new_record(fields)
        doc_ref = self._collection.document(record["id"])
        try:
            doc_ref.create(record, timeout=self._timeout)
        except gexc.AlreadyExists as e:
            raise DocumentConflictError(record["id"]) from e
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"Firestore create failed: {e}") from e

        logger.info(f"Created mindmap {record['id']} in Firestore")
        return record["id"]

    def get_by_id(self, doc_id: str) -> Optional[MindmapDocument]:
        try:
            snapshot = self._collection.document(doc_id).get(timeout=self._timeout)
        except gexc.NotFound:
            return None
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"Firestore get failed: {e}") from e

        if not snapshot.exists:
            return None
        return normalize_record(snapshot.to_dict() or {}, doc_id=snapshot.id)

    def update(self, doc_id: str, fields: dict[str, Any]) -> bool:
        updates = build_update_fields(fields)
        try:
            # update() fails with NotFound instead of creating the document
            self._collection.document(doc_id).update(updates, timeout=self._timeout)
        except gexc.NotFound:
            logger.info(f"Update skipped, mindmap {doc_id} does not exist")
            return False
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"Firestore update failed: {e}") from e

        logger.info(f"Updated mindmap {doc_id}: fields={sorted(updates)}")
        return True

    def delete_by_id(self, doc_id: str) -> bool:
        doc_ref = self._collection.document(doc_id)
        try:
            # Firestore deletes are silent on missing documents, so check first
            snapshot = doc_ref.get(timeout=self._timeout)
            if not snapshot.exists:
                return False
            doc_ref.delete(timeout=self._timeout)
        except gexc.NotFound:
            return False
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"Firestore delete failed: {e}") from e

        logger.info(f"Deleted mindmap {doc_id} from Firestore")
        return True

    def list_all(self) -> list[MindmapDocument]:
        documents = []
        try:
            for snapshot in self._collection.stream(timeout=self._timeout):
                documents.append(normalize_record(snapshot.to_dict() or {}, doc_id=snapshot.id))
        except gexc.GoogleAPIError as e:
            logger.error(f"Firestore list failed: {type(e).__name__}: {e}")
            raise PersistenceError(f"Firestore list failed: {e}") from e

        return sort_newest_first(documents)

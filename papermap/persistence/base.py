"""Document store contract shared by the DynamoDB and Firestore backends.

Both implementations must behave identically from the caller's side
(tests/test_store_contract.py runs the same suite against each):

- create(fields): keeps a caller-supplied id, otherwise generates one;
  refuses to overwrite an existing record (DocumentConflictError)
- get_by_id(id): MindmapDocument, or None when absent
- update(id, fields): top-level field merge, rewrites updatedAt;
  False when the record does not exist
- delete_by_id(id): True if something was deleted, False otherwise
- list_all(): every record, newest first; [] when empty
"""

import uuid
from typing import Any, Optional, Protocol, runtime_checkable

from papermap.mindmap.schemas import MindmapDocument
from papermap.persistence.normalize import serialize_fields, utc_now_iso


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for mindmap document persistence backends."""

    @property
    def backend_name(self) -> str: ...

    def create(self, fields: dict[str, Any]) -> str: ...

    def get_by_id(self, doc_id: str) -> Optional[MindmapDocument]: ...

    def update(self, doc_id: str, fields: dict[str, Any]) -> bool: ...

    def delete_by_id(self, doc_id: str) -> bool: ...

    def list_all(self) -> list[MindmapDocument]: ...


def new_document_id() -> str:
    return str(uuid.uuid4())


def build_new_record(fields: dict[str, Any]) -> dict[str, Any]:
    """Assemble a full record for create(): id plus both timestamps."""
    record = serialize_fields(fields)
    if not record.get("id"):
        record["id"] = new_document_id()
    now = utc_now_iso()
    record["createdAt"] = now
    record["updatedAt"] = now
    return record


def build_update_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Fields for update(): id is immutable, updatedAt always rewritten."""
    updates = serialize_fields(fields)
    updates.pop("id", None)
    updates["updatedAt"] = utc_now_iso()
    return updates

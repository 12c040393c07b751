"""Mindmap actions: ingest a paper and rework individual nodes.

Every node action follows the same read-prompt-patch-write cycle:

1. load the document (DocumentNotFoundError if absent)
2. check the stored source text (MissingSourceTextError if empty) and
   that the path addresses a node (NodePathNotFoundError otherwise)
3. render the action's prompt and invoke the model
4. patch the node in the in-memory tree and write mindmapData back

Nothing is written if any step before the write fails. There is no
locking: two concurrent actions on one document are last-writer-wins.
"""

import logging
from pathlib import PurePath
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from papermap.cancellation import CancellationToken
from papermap.config import Settings
from papermap.errors import (
    DocumentNotFoundError,
    MissingSourceTextError,
    ModelInvocationError,
    NodePathNotFoundError,
    SubtreeDepthExceededError,
)
from papermap.llm.invoker import ModelInvoker
from papermap.mindmap.paths import PathSegment, format_path, get_node, node_depth, update_node
from papermap.mindmap.schemas import MindmapDocument, MindmapNode, NodeData, PaperMetadata
from papermap.persistence.base import DocumentStore
from papermap.prompts.registry import (
    PROMPT_CHILDREN,
    PROMPT_METADATA,
    PROMPT_MINDMAP,
    PROMPT_SUBTREE,
    PROMPT_TOOLTIP,
    PromptRegistry,
)

logger = logging.getLogger(__name__)


def title_from_filename(filename: str) -> str:
    """'attention.pdf' -> 'attention'."""
    stem = PurePath(filename).stem
    return stem or filename


class MindmapActions:
    """Orchestrates store reads, model calls and tree patches for one backend pair."""

    def __init__(
        self,
        store: DocumentStore,
        invoker: ModelInvoker,
        settings: Settings,
        prompts: PromptRegistry,
    ):
        self.store = store
        self.invoker = invoker
        self.settings = settings
        self.prompts = prompts

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _invoke(
        self,
        prompt_key: str,
        token: CancellationToken,
        label: str,
        *,
        pdf_text: str,
        name: str = "",
    ) -> dict[str, Any]:
        rendered = self.prompts.render(prompt_key, pdf_text=pdf_text, name=name)
        token.raise_if_cancelled(label)
        return self.invoker.invoke(
            rendered.prompt,
            rendered.system,
            cancellation=token,
            label=label,
        )

    def _load(self, doc_id: str, token: CancellationToken, label: str) -> MindmapDocument:
        token.raise_if_cancelled(label)
        doc = self.store.get_by_id(doc_id)
        if doc is None:
            raise DocumentNotFoundError(doc_id)
        return doc

    def _load_for_node(
        self,
        doc_id: str,
        path: Sequence[PathSegment],
        token: CancellationToken,
        label: str,
    ) -> MindmapDocument:
        doc = self._load(doc_id, token, label)
        if not doc.pdf_text:
            raise MissingSourceTextError(doc_id)
        if doc.mindmap_data is None:
            raise NodePathNotFoundError(doc_id, format_path(path))
        target = get_node(doc.mindmap_data, path)
        if not isinstance(target, (MindmapNode, dict)):
            raise NodePathNotFoundError(doc_id, format_path(path))
        return doc

    def _write_patch(
        self,
        doc: MindmapDocument,
        path: Sequence[PathSegment],
        patch: dict[str, Any],
        token: CancellationToken,
        label: str,
    ) -> None:
        tree = doc.mindmap_data
        if tree is None or not update_node(tree, path, patch):
            raise NodePathNotFoundError(doc.id, format_path(path))

        token.raise_if_cancelled(label)
        if not self.store.update(doc.id, {"mindmapData": tree}):
            # Deleted between read and write
            raise DocumentNotFoundError(doc.id)

    def _children_from(self, result: dict[str, Any], label: str) -> list[MindmapNode]:
        raw_children = result.get("children") or []
        if not isinstance(raw_children, list):
            raise ModelInvocationError(
                f"[{label}] Model returned children of type {type(raw_children).__name__}"
            )
        try:
            return [MindmapNode.model_validate(child) for child in raw_children]
        except ValidationError as e:
            raise ModelInvocationError(f"[{label}] Model returned malformed nodes: {e}") from e

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------

    def ingest(
        self,
        pdf_text: str,
        filename: str,
        *,
        cancellation: Optional[CancellationToken] = None,
    ) -> str:
        """Generate metadata and a full mindmap for a paper and store it.

        Returns:
            The new document id
        """
        token = cancellation or CancellationToken.never()
        label = f"ingest:{filename}"

        logger.info(f"[{label}] Extracting metadata ({len(pdf_text):,} chars of text)")
        raw_metadata = self._invoke(PROMPT_METADATA, token, f"{label}:metadata", pdf_text=pdf_text)
        try:
            metadata = PaperMetadata.model_validate(raw_metadata)
        except ValidationError as e:
            raise ModelInvocationError(f"[{label}] Malformed metadata: {e}") from e

        logger.info(f"[{label}] Generating mindmap")
        raw_tree = self._invoke(PROMPT_MINDMAP, token, f"{label}:mindmap", pdf_text=pdf_text)
        try:
            tree = MindmapNode.model_validate(raw_tree)
        except ValidationError as e:
            raise ModelInvocationError(f"[{label}] Malformed mindmap: {e}") from e
        if not tree.children:
            raise ModelInvocationError(f"[{label}] Generated mindmap has no children")

        title = metadata.title.strip() or title_from_filename(filename)

        token.raise_if_cancelled(label)
        doc_id = self.store.create(
            {
                "filename": filename,
                "title": title,
                "authors": metadata.authors,
                "date": metadata.date,
                "mindmapData": tree,
                "pdfText": pdf_text,
            }
        )
        logger.info(
            f"[{label}] Created mindmap {doc_id} in {self.store.backend_name}: "
            f"'{title}', {tree.count_leaves()} leaves, depth {tree.depth()}"
        )
        return doc_id

    # ------------------------------------------------------------------
    # Node actions
    # ------------------------------------------------------------------

    def regenerate_tooltip(
        self,
        doc_id: str,
        path: Sequence[PathSegment],
        node_data: NodeData,
        *,
        cancellation: Optional[CancellationToken] = None,
    ) -> str:
        """Rewrite the tooltip of one node. Returns the new tooltip."""
        token = cancellation or CancellationToken.never()
        label = f"tooltip:{doc_id}"

        doc = self._load_for_node(doc_id, path, token, label)
        result = self._invoke(
            PROMPT_TOOLTIP, token, label, pdf_text=doc.pdf_text, name=node_data.name
        )

        tooltip = result.get("tooltip")
        if not isinstance(tooltip, str) or not tooltip.strip():
            raise ModelInvocationError(f"[{label}] Model returned no tooltip")

        self._write_patch(doc, path, {"tooltip": tooltip}, token, label)
        logger.info(f"[{label}] Tooltip updated at {format_path(path)}")
        return tooltip

    def regenerate_subtree(
        self,
        doc_id: str,
        path: Sequence[PathSegment],
        node_data: NodeData,
        *,
        cancellation: Optional[CancellationToken] = None,
    ) -> list[MindmapNode]:
        """Replace the children of one node with a freshly generated subtree."""
        token = cancellation or CancellationToken.never()
        label = f"subtree:{doc_id}"

        max_depth = self.settings.max_subtree_depth
        if max_depth is not None:
            depth = node_depth(path)
            if depth >= max_depth:
                raise SubtreeDepthExceededError(depth, max_depth)

        doc = self._load_for_node(doc_id, path, token, label)
        result = self._invoke(
            PROMPT_SUBTREE, token, label, pdf_text=doc.pdf_text, name=node_data.name
        )
        children = self._children_from(result, label)

        self._write_patch(
            doc, path, {"children": [c.to_dict() for c in children]}, token, label
        )
        logger.info(f"[{label}] Subtree remade at {format_path(path)}: {len(children)} children")
        return children

    def expand_leaf(
        self,
        doc_id: str,
        path: Sequence[PathSegment],
        node_data: NodeData,
        *,
        cancellation: Optional[CancellationToken] = None,
    ) -> list[MindmapNode]:
        """Generate one level of children for a node."""
        token = cancellation or CancellationToken.never()
        label = f"children:{doc_id}"

        doc = self._load_for_node(doc_id, path, token, label)
        result = self._invoke(
            PROMPT_CHILDREN, token, label, pdf_text=doc.pdf_text, name=node_data.name
        )
        children = self._children_from(result, label)

        self._write_patch(
            doc, path, {"children": [c.to_dict() for c in children]}, token, label
        )
        logger.info(f"[{label}] Went deeper at {format_path(path)}: {len(children)} children")
        return children

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def list_documents(self) -> list[MindmapDocument]:
        return self.store.list_all()

    def get_document(self, doc_id: str) -> MindmapDocument:
        doc = self.store.get_by_id(doc_id)
        if doc is None:
            raise DocumentNotFoundError(doc_id)
        return doc

    def delete_document(self, doc_id: str) -> None:
        if not self.store.delete_by_id(doc_id):
            raise DocumentNotFoundError(doc_id)
        logger.info(f"Mindmap deleted from {self.store.backend_name}: {doc_id}")

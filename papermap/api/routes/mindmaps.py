"""Mindmap API routes.

Endpoints:
    GET    /api/mindmaps                          List mindmaps, newest first
    GET    /api/mindmaps/{id}                     Retrieve one mindmap
    DELETE /api/mindmaps/{id}                     Delete a mindmap
    POST   /api/upload                            Upload a PDF and generate its mindmap
    POST   /api/mindmaps/{id}/redo-description    Rewrite one node's tooltip
    POST   /api/mindmaps/{id}/remake-subtree      Regenerate the subtree below one node
    POST   /api/mindmaps/{id}/go-deeper           Generate children for one node

Every route accepts an optional ?backend=aws|gcp selector.
Routes are plain `def`: FastAPI runs them in its thread pool, and the
store and model clients are blocking.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from papermap.actions.orchestrator import MindmapActions
from papermap.actions.pdf_text import extract_pdf_text
from papermap.api.dependencies import error_responses, get_actions, get_cancellation
from papermap.cancellation import CancellationToken
from papermap.mindmap.paths import NodePath, parse_path
from papermap.mindmap.schemas import NodeActionRequest, NodeData

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["mindmaps"])


def _unpack(request: NodeActionRequest) -> tuple[NodePath, NodeData]:
    if request.node_path is None or request.node_data is None:
        raise HTTPException(
            status_code=400, detail="Missing nodePath or nodeData in request body."
        )
    with error_responses("Invalid nodePath"):
        path = parse_path(request.node_path)
    return path, request.node_data


# --- Documents ---


@router.get("/mindmaps")
def list_mindmaps(actions: MindmapActions = Depends(get_actions)) -> list[dict[str, Any]]:
    """List all mindmaps, newest first."""
    with error_responses("Error fetching mindmaps"):
        documents = actions.list_documents()
    return [doc.to_record() for doc in documents]


@router.get("/mindmaps/{doc_id}")
def get_mindmap(doc_id: str, actions: MindmapActions = Depends(get_actions)) -> dict[str, Any]:
    with error_responses("Error fetching mindmap"):
        doc = actions.get_document(doc_id)
    return doc.to_record()


@router.delete("/mindmaps/{doc_id}")
def delete_mindmap(doc_id: str, actions: MindmapActions = Depends(get_actions)):
    with error_responses("Error deleting mindmap"):
        actions.delete_document(doc_id)
    return {"success": True, "message": "Mindmap deleted successfully"}


@router.post("/upload", status_code=201)
def upload_pdf(
    pdf: Optional[UploadFile] = File(default=None),
    actions: MindmapActions = Depends(get_actions),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    """Upload a PDF, extract its text, and generate metadata plus a mindmap.

    Two model calls run in sequence (metadata, then the full tree); the
    document is stored only if both succeed.
    """
    if pdf is None:
        raise HTTPException(status_code=400, detail="No file uploaded.")

    filename = pdf.filename or "upload.pdf"
    logger.info(f"Processing uploaded PDF: {filename}")

    with error_responses("Failed to process PDF"):
        pdf_text = extract_pdf_text(pdf.file.read(), filename)
        mindmap_id = actions.ingest(pdf_text, filename, cancellation=cancellation)

    return {
        "success": True,
        "message": "PDF processed and mind map created!",
        "mindmapId": mindmap_id,
    }


# --- Node actions ---


@router.post("/mindmaps/{doc_id}/redo-description")
def redo_description(
    doc_id: str,
    request: NodeActionRequest,
    actions: MindmapActions = Depends(get_actions),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    """Rewrite the tooltip of the node at nodePath."""
    path, node_data = _unpack(request)
    with error_responses("Failed to redo node description"):
        tooltip = actions.regenerate_tooltip(
            doc_id, path, node_data, cancellation=cancellation
        )
    return {"success": True, "newTooltip": tooltip}


@router.post("/mindmaps/{doc_id}/remake-subtree")
def remake_subtree(
    doc_id: str,
    request: NodeActionRequest,
    actions: MindmapActions = Depends(get_actions),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    """Replace the children of the node at nodePath with a fresh subtree."""
    path, node_data = _unpack(request)
    with error_responses("Failed to remake subtree"):
        children = actions.regenerate_subtree(
            doc_id, path, node_data, cancellation=cancellation
        )
    return {"success": True, "newChildren": [child.to_dict() for child in children]}


@router.post("/mindmaps/{doc_id}/go-deeper")
def go_deeper(
    doc_id: str,
    request: NodeActionRequest,
    actions: MindmapActions = Depends(get_actions),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    """Generate one level of children for the node at nodePath."""
    path, node_data = _unpack(request)
    with error_responses("Failed to go deeper"):
        children = actions.expand_leaf(doc_id, path, node_data, cancellation=cancellation)
    return {"success": True, "newChildren": [child.to_dict() for child in children]}

"""Mind map tree model and path-addressed node updates."""

from papermap.mindmap.paths import (
    FieldSegment,
    IndexSegment,
    NodePath,
    format_path,
    get_node,
    node_depth,
    parse_path,
    update_node,
)
from papermap.mindmap.schemas import (
    MindmapDocument,
    MindmapNode,
    NodeActionRequest,
    NodeData,
    PaperMetadata,
)

__all__ = [
    "FieldSegment",
    "IndexSegment",
    "NodePath",
    "format_path",
    "get_node",
    "node_depth",
    "parse_path",
    "update_node",
    "MindmapDocument",
    "MindmapNode",
    "NodeActionRequest",
    "NodeData",
    "PaperMetadata",
]

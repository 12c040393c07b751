"""Path-addressed lookup and mutation inside a mind map tree.

A path is a sequence of segments. FieldSegment descends into a named field
of a keyed container (a MindmapNode or a plain dict); IndexSegment selects
an element of an ordered list. On the wire a path is a JSON array where
strings are field names and numbers are indices, e.g.

    ["children", 1, "children", 0]

addresses the first child of the root's second child.

update_node() applies a patch at the addressed location:
- addressed value is a keyed container -> shallow merge (patch keys win,
  other keys kept)
- anything else (scalar, list, absent field) -> replaced by the patch

Failure to resolve returns False and leaves the tree untouched. It is the
caller's job to turn that into a not-found response.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from papermap.errors import InvalidInputError
from papermap.mindmap.schemas import MindmapNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSegment:
    name: str

    def to_wire(self) -> str:
        return self.name


@dataclass(frozen=True)
class IndexSegment:
    position: int

    def to_wire(self) -> int:
        return self.position


PathSegment = Union[FieldSegment, IndexSegment]
NodePath = tuple[PathSegment, ...]


class _Missing:
    def __repr__(self) -> str:
        return "<missing>"


MISSING = _Missing()


def parse_segment(raw: Any) -> PathSegment:
    """Convert one wire segment. Numbers are truncated toward zero."""
    # bool is an int subclass; reject it explicitly
    if isinstance(raw, bool):
        raise InvalidInputError(f"Invalid path segment: {raw!r}")
    if isinstance(raw, str):
        return FieldSegment(raw)
    if isinstance(raw, int):
        return IndexSegment(raw)
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise InvalidInputError(f"Invalid path index: {raw!r}")
        return IndexSegment(int(raw))
    raise InvalidInputError(
        f"Invalid path segment {raw!r}: expected a string or a number"
    )


def parse_path(raw: Any) -> NodePath:
    """Convert a wire path (list of strings/numbers) into typed segments.

    Raises:
        InvalidInputError: If raw is not a list or holds an unusable segment
    """
    if not isinstance(raw, (list, tuple)):
        raise InvalidInputError(f"nodePath must be a list, got {type(raw).__name__}")
    return tuple(parse_segment(item) for item in raw)


def format_path(path: Sequence[PathSegment]) -> list[Union[str, int]]:
    return [segment.to_wire() for segment in path]


def node_depth(path: Sequence[PathSegment]) -> int:
    """Tree depth of the addressed node (root children are depth 1)."""
    return sum(1 for segment in path if isinstance(segment, IndexSegment))


def _is_keyed(value: Any) -> bool:
    return isinstance(value, (MindmapNode, dict))


def _read_field(container: Any, name: str) -> Any:
    if isinstance(container, MindmapNode):
        if name in MindmapNode.model_fields:
            return getattr(container, name)
        extras = container.model_extra or {}
        return extras.get(name, MISSING)
    if isinstance(container, dict):
        return container.get(name, MISSING)
    return MISSING


def _read_index(container: Any, position: int) -> Any:
    if not isinstance(container, list):
        return MISSING
    # negative positions are out of range, not Python-style from-the-end
    if position < 0 or position >= len(container):
        return MISSING
    return container[position]


def _step(current: Any, segment: PathSegment) -> Any:
    if isinstance(segment, FieldSegment):
        return _read_field(current, segment.name)
    return _read_index(current, segment.position)


def get_node(root: Any, path: Sequence[PathSegment]) -> Optional[Any]:
    """Resolve path against root without modifying anything.

    Returns the addressed value, or None if any segment fails to resolve.
    An empty path resolves to nothing.
    """
    if not path:
        return None
    current = root
    for segment in path:
        current = _step(current, segment)
        if current is MISSING:
            return None
    return current


def _merge(target: Any, patch: Mapping[str, Any]) -> Any:
    if isinstance(target, MindmapNode):
        return MindmapNode.model_validate({**target.to_dict(), **patch})
    return {**target, **patch}


def _write_field(container: Any, name: str, value: Any) -> None:
    if isinstance(container, MindmapNode):
        # validate_assignment coerces dict children into nodes and
        # raises before anything is written
        setattr(container, name, value)
    else:
        container[name] = value


def update_node(root: Any, path: Sequence[PathSegment], patch: Any) -> bool:
    """Apply patch at the location addressed by path.

    Args:
        root: Tree root (MindmapNode) or any nested dict/list structure
        path: Typed path segments (see parse_path)
        patch: Mapping to merge into a keyed container, or replacement value

    Returns:
        True if the patch was applied, False if the path does not resolve.

    Raises:
        InvalidInputError: If the patch does not fit the node schema
    """
    if not path:
        return False

    parent = root
    for segment in path[:-1]:
        parent = _step(parent, segment)
        if parent is MISSING:
            logger.debug(f"Path does not resolve at {segment!r}: {format_path(path)}")
            return False

    last = path[-1]
    if isinstance(last, IndexSegment):
        target = _read_index(parent, last.position)
        if target is MISSING:
            return False
    else:
        if not _is_keyed(parent):
            return False
        target = _read_field(parent, last.name)

    try:
        if _is_keyed(target) and isinstance(patch, Mapping):
            new_value = _merge(target, patch)
        else:
            new_value = patch
        if isinstance(last, IndexSegment):
            parent[last.position] = new_value
        else:
            _write_field(parent, last.name, new_value)
    except ValidationError as e:
        raise InvalidInputError(f"Patch does not fit node schema: {e}") from e

    return True

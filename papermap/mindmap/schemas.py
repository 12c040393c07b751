"""Mindmap schemas: tree nodes, stored documents, and action payloads.

Node and document shapes are shared by model generation, storage and the
HTTP API. Field names on the wire are camelCase (mindmapData, pdfText,
createdAt, ...); Python attributes are snake_case with aliases.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

NODE_TEXT_FIELDS = ("name", "tooltip", "section", "pages")


class MindmapNode(BaseModel):
    """A single node of the mind map tree (recursive).

    Unknown keys written by other clients are kept as extras so a
    read-modify-write cycle does not drop them.
    """

    model_config = ConfigDict(
        extra="allow",
        validate_assignment=True,
        coerce_numbers_to_str=True,
    )

    name: str = Field(default="", description="Concise topic name")
    tooltip: str = Field(default="", description="Plain-English explanation")
    section: str = Field(default="", description="Source document section")
    pages: str = Field(default="", description="Source page reference, e.g. '5-7'")
    children: list["MindmapNode"] = Field(default_factory=list)

    @field_validator(*NODE_TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if value is None or isinstance(value, dict):
            return ""
        if isinstance(value, bool):
            return str(value).lower()
        # Older writers stored pages as [3, 4]
        if isinstance(value, (list, tuple)):
            return ", ".join(str(item) for item in value if item is not None)
        return value

    @field_validator("children", mode="before")
    @classmethod
    def _coerce_children(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            return []
        children = []
        for child in value:
            if isinstance(child, str):
                child = {"name": child}
            if isinstance(child, (dict, MindmapNode)):
                children.append(child)
        return children

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()

    def count_leaves(self) -> int:
        if not self.children:
            return 1
        return sum(child.count_leaves() for child in self.children)

    def depth(self) -> int:
        """Number of levels in this subtree (a leaf has depth 1)."""
        if not self.children:
            return 1
        return 1 + max(child.depth() for child in self.children)


MindmapNode.model_rebuild()


class MindmapDocument(BaseModel):
    """One ingested paper plus its generated tree and metadata."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    filename: str = ""
    title: str = ""
    authors: list[str] = Field(default_factory=list)
    date: str = Field(default="", description="Publication date, free text, never parsed")
    mindmap_data: Optional[MindmapNode] = Field(default=None, alias="mindmapData")
    pdf_text: str = Field(default="", alias="pdfText")
    created_at: str = Field(default="", alias="createdAt")
    updated_at: str = Field(default="", alias="updatedAt")

    def to_record(self) -> dict[str, Any]:
        """Serialize with canonical (camelCase) field names."""
        return self.model_dump(by_alias=True)


class PaperMetadata(BaseModel):
    """Metadata shape returned by the extraction prompt."""

    title: str = ""
    authors: list[str] = Field(default_factory=list)
    date: str = ""

    @field_validator("title", "date", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        # Anything else is unusable; ingest falls back to the filename
        return ""

    @field_validator("authors", mode="before")
    @classmethod
    def _coerce_authors(cls, value: Any) -> Any:
        from papermap.persistence.normalize import normalize_authors

        return normalize_authors(value)


# --- Action payloads ---


class NodeData(BaseModel):
    """Client-side copy of the addressed node. Only `name` is used."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1)


class NodeActionRequest(BaseModel):
    """Body of redo-description / remake-subtree / go-deeper."""

    model_config = ConfigDict(populate_by_name=True)

    node_path: Optional[list[Any]] = Field(
        default=None,
        alias="nodePath",
        description="Path segments: strings are field names, numbers are list indices",
        examples=[["children", 1, "children", 0]],
    )
    node_data: Optional[NodeData] = Field(default=None, alias="nodeData")


class LoginRequest(BaseModel):
    password: str = ""

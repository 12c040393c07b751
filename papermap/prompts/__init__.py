"""Prompt templates for the mindmap model calls."""

from papermap.prompts.registry import (
    PROMPT_CHILDREN,
    PROMPT_METADATA,
    PROMPT_MINDMAP,
    PROMPT_SUBTREE,
    PROMPT_TOOLTIP,
    PromptRegistry,
    PromptTemplate,
    RenderedPrompt,
)

__all__ = [
    "PROMPT_CHILDREN",
    "PROMPT_METADATA",
    "PROMPT_MINDMAP",
    "PROMPT_SUBTREE",
    "PROMPT_TOOLTIP",
    "PromptRegistry",
    "PromptTemplate",
    "RenderedPrompt",
]

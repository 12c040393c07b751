"""Registry for prompt templates.

Loads prompt definitions from YAML and renders them for the action
orchestrator.
"""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFINITIONS_DIR = Path(__file__).parent / "definitions"

PROMPT_METADATA = "metadata"
PROMPT_MINDMAP = "mindmap"
PROMPT_TOOLTIP = "tooltip"
PROMPT_SUBTREE = "subtree"
PROMPT_CHILDREN = "children"


class PromptTemplate(BaseModel):
    """One system instruction plus user template."""

    key: str
    description: str = ""
    system: str
    template: str
    source_chars: Optional[int] = Field(
        default=None,
        description="Only the first N characters of pdf_text are sent",
    )


class RenderedPrompt(BaseModel):
    system: str
    prompt: str


class PromptRegistry:
    """Loads and renders prompt templates."""

    def __init__(self, definitions_file: Optional[Path] = None) -> None:
        self._file = definitions_file or DEFINITIONS_DIR / "prompts.yaml"
        self._prompts: dict[str, PromptTemplate] = {}
        self._load_prompts()

    def _load_prompts(self) -> None:
        if not self._file.exists():
            logger.warning(f"Prompts file not found: {self._file}")
            return

        with open(self._file) as f:
            data = yaml.safe_load(f) or {}

        for prompt_data in data.get("prompts", []):
            try:
                prompt = PromptTemplate(**prompt_data)
                self._prompts[prompt.key] = prompt
                logger.debug(f"Loaded prompt: {prompt.key}")
            except Exception as e:
                logger.error(f"Failed to load prompt: {e}")

        logger.info(f"Loaded {len(self._prompts)} prompt templates")

    def get(self, key: str) -> Optional[PromptTemplate]:
        return self._prompts.get(key)

    def list_keys(self) -> list[str]:
        return sorted(self._prompts)

    def render(self, key: str, *, pdf_text: str, name: str = "") -> RenderedPrompt:
        """Render a prompt for the given source text and node name.

        Raises:
            KeyError: If no prompt is registered under key
        """
        template = self._prompts.get(key)
        if template is None:
            raise KeyError(f"Prompt not found: {key}")

        if template.source_chars is not None:
            pdf_text = pdf_text[: template.source_chars]

        return RenderedPrompt(
            system=template.system,
            prompt=template.template.format(pdf_text=pdf_text, name=name),
        )

    @property
    def count(self) -> int:
        return len(self._prompts)

from papermap.actions.orchestrator import MindmapActions, title_from_filename
from papermap.actions.pdf_text import extract_pdf_text

__all__ = ["MindmapActions", "extract_pdf_text", "title_from_filename"]

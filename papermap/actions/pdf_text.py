"""Text extraction from uploaded PDF files."""

import io
import logging

import pdfplumber

from papermap.errors import InvalidInputError

logger = logging.getLogger(__name__)


def extract_pdf_text(content: bytes, filename: str = "") -> str:
    """Extract the text of every page, pages separated by blank lines.

    Raises:
        InvalidInputError: If the bytes are not a readable PDF or hold no text
    """
    if not content:
        raise InvalidInputError("Uploaded file is empty")

    try:
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:
        logger.warning(f"Could not read PDF '{filename}': {e}")
        raise InvalidInputError(f"Could not read PDF '{filename}': {e}") from e

    text = "\n\n".join(page.strip() for page in pages if page.strip())
    if not text:
        raise InvalidInputError(f"No extractable text in PDF '{filename}'")

    logger.info(f"Extracted {len(text):,} chars from {len(pages)} pages of '{filename}'")
    return text

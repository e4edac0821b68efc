"""Resume text extraction for uploaded files.

pdfminer.six for PDFs; everything else is read as UTF-8 text.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pdfminer.high_level import extract_text as pdf_extract_text
from pdfminer.pdfparser import PDFSyntaxError

from qfix.core.errors import InvalidInput

logger = logging.getLogger(__name__)

MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024  # ~10MB


def extract_text(file_path: Path) -> str:
    """Extract raw text from a resume file.

    Raises ``InvalidInput`` if the file is missing, too large, unreadable or
    yields no text.
    """
    if not file_path.exists():
        raise InvalidInput(f"File not found: {file_path}")
    if file_path.stat().st_size > MAX_FILE_SIZE_BYTES:
        raise InvalidInput("File is too large. Please upload a file under 10MB.")

    suffix = file_path.suffix.lower()
    logger.debug("Extracting text from %s (type=%s)", file_path, suffix)

    if suffix == ".pdf":
        try:
            text = pdf_extract_text(str(file_path))
        except PDFSyntaxError as exc:
            raise InvalidInput(f"Could not read PDF {file_path.name}: {exc}") from exc
    else:
        # Assume plain text for everything else (.txt, .md, .tex, etc.)
        try:
            text = file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidInput(
                f"Unsupported file type: {file_path.name}. "
                "Please upload a PDF or a plain-text file."
            ) from exc

    text = text.strip()
    if not text:
        raise InvalidInput(f"No text could be extracted from: {file_path.name}")

    return text

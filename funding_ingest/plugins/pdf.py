"""
PDF text extraction using pdfplumber.

Page text plus table rows flattened to ``cell | cell`` lines, which keeps
eligibility tables readable for the pattern and model tiers.
"""

import re
from pathlib import Path

import pdfplumber
import structlog

from ..core.exceptions import DocumentExtractionError

logger = structlog.get_logger(__name__)


def extract_text_from_pdf(pdf_path: str) -> str:
    """
    Extract all text from a PDF.

    Args:
        pdf_path: Path to PDF file

    Returns:
        Page texts joined by blank lines

    Raises:
        DocumentExtractionError: If the file is missing or unreadable
    """
    if not Path(pdf_path).exists():
        raise DocumentExtractionError(f"PDF not found: {pdf_path}")

    try:
        text_parts = []
        with pdfplumber.open(pdf_path) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    text_parts.append(_cleanup_pdf_text(page_text))
                for table in page.extract_tables():
                    rows = _table_to_lines(table)
                    if rows:
                        text_parts.append(rows)
    except Exception as e:
        raise DocumentExtractionError(f"pdfplumber failed on {pdf_path}: {e}") from e

    full_text = "\n\n".join(text_parts)
    logger.info("pdf_extracted", path=pdf_path, parts=len(text_parts), chars=len(full_text))
    return full_text


def _cleanup_pdf_text(text: str) -> str:
    """Clean up extracted PDF text."""
    text = re.sub(r"[ \t]+", " ", text)
    # Bare page numbers
    text = re.sub(r"\n\d+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _table_to_lines(table: list[list]) -> str:
    lines = []
    for row in table or []:
        cells = [str(cell).strip().replace("\n", " ") for cell in row if cell]
        if cells:
            lines.append(" | ".join(cells))
    return "\n".join(lines)

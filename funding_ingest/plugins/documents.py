"""
Attachment text extraction dispatch.

Picks a converter by file suffix and concatenates the text of every
readable attachment. Unreadable or unsupported files are logged and
skipped; one bad attachment never fails the announcement.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import structlog

from ..core.exceptions import DocumentExtractionError
from ..core.normalizer import html_to_text
from .office import extract_text_from_docx, extract_text_from_hwpx, extract_text_via_libreoffice
from .pdf import extract_text_from_pdf

logger = structlog.get_logger(__name__)


def _read_html(path: str) -> str:
    return html_to_text(Path(path).read_text(encoding="utf-8", errors="replace"))


def _read_plain(path: str) -> str:
    return Path(path).read_text(encoding="utf-8", errors="replace")


DEFAULT_CONVERTERS: dict[str, Callable[[str], str]] = {
    ".pdf": extract_text_from_pdf,
    ".hwpx": extract_text_from_hwpx,
    ".hwp": extract_text_via_libreoffice,
    ".doc": extract_text_via_libreoffice,
    ".docx": extract_text_from_docx,
    ".html": _read_html,
    ".htm": _read_html,
    ".txt": _read_plain,
}


@dataclass
class DocumentText:
    """Concatenated attachment text for one announcement."""
    text: str = ""
    parsed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())


class DocumentTextExtractor:
    """
    Convert downloaded attachments to plain text.

    Usage:
        extractor = DocumentTextExtractor()
        document = extractor.extract_folder("/data/attachments/.../announcement-1", ["공고문.hwpx"])
    """

    def __init__(self, converters: Optional[dict[str, Callable[[str], str]]] = None):
        self.converters = dict(converters or DEFAULT_CONVERTERS)

    def supports(self, filename: str) -> bool:
        return Path(filename).suffix.lower() in self.converters

    def extract_file(self, path: str) -> str:
        """
        Extract text from one file.

        Raises:
            DocumentExtractionError: For unsupported suffixes or converter failures
        """
        suffix = Path(path).suffix.lower()
        converter = self.converters.get(suffix)
        if converter is None:
            raise DocumentExtractionError(f"Unsupported attachment type: {suffix or '(none)'}")
        return converter(path)

    def extract_folder(self, folder: Optional[str], filenames: list[str]) -> DocumentText:
        """
        Extract and concatenate text of the named files in a folder.

        Args:
            folder: Attachment folder of one announcement
            filenames: Files to read, in order

        Returns:
            DocumentText with per-file outcome
        """
        result = DocumentText()
        if not folder or not filenames:
            return result

        parts = []
        for filename in filenames:
            path = Path(folder) / filename
            if not self.supports(filename):
                logger.info("attachment_unsupported", filename=filename)
                result.skipped.append(filename)
                continue
            try:
                text = self.extract_file(str(path))
            except DocumentExtractionError as e:
                logger.warning("attachment_extraction_failed", filename=filename, error=str(e))
                result.failed[filename] = str(e)
                continue

            if text and text.strip():
                parts.append(f"[{filename}]\n{text.strip()}")
                result.parsed.append(filename)
            else:
                # Scanned images without a text layer
                logger.info("attachment_empty", filename=filename)
                result.skipped.append(filename)

        result.text = "\n\n".join(parts)
        logger.info(
            "attachments_extracted",
            folder=folder,
            parsed=len(result.parsed),
            failed=len(result.failed),
            skipped=len(result.skipped),
            chars=len(result.text),
        )
        return result

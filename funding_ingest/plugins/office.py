"""
Office document text extraction.

- HWPX: zip archive; paragraph text lives in ``<hp:t>`` nodes of
  ``Contents/section*.xml``
- DOCX: mammoth raw text
- HWP / DOC: converted to PDF with LibreOffice headless, then pdfplumber
"""

import re
import shutil
import subprocess
import tempfile
import zipfile
from pathlib import Path

import mammoth
import structlog
from lxml import etree

from ..core.exceptions import DocumentExtractionError
from .pdf import extract_text_from_pdf

logger = structlog.get_logger(__name__)

HWPX_SECTION_PATTERN = re.compile(r"Contents/section(\d+)\.xml$", re.IGNORECASE)
HWPX_PARAGRAPH_NS = "http://www.hancom.co.kr/hwpml/2011/paragraph"

SOFFICE_BINARY = "soffice"
CONVERSION_TIMEOUT = 30


def extract_text_from_hwpx(path: str) -> str:
    """
    Extract paragraph text from an HWPX file.

    Sections are read in numeric order; each ``<hp:p>`` becomes one line.

    Raises:
        DocumentExtractionError: If the archive or its XML is unreadable
    """
    try:
        with zipfile.ZipFile(path) as archive:
            sections = sorted(
                (int(m.group(1)), name)
                for name in archive.namelist()
                if (m := HWPX_SECTION_PATTERN.search(name))
            )
            paragraphs = []
            for _, name in sections:
                root = etree.fromstring(archive.read(name))
                paragraphs.extend(_hwpx_paragraphs(root))
    except (zipfile.BadZipFile, etree.XMLSyntaxError, OSError) as e:
        raise DocumentExtractionError(f"HWPX unreadable {path}: {e}") from e

    text = "\n".join(paragraphs)
    logger.info("hwpx_extracted", path=path, sections=len(sections), chars=len(text))
    return text


def _hwpx_paragraphs(root) -> list[str]:
    # Namespace prefixes vary between HWPX producers; match on local name
    paragraphs = []
    for paragraph in root.iter():
        if not isinstance(paragraph.tag, str) or etree.QName(paragraph).localname != "p":
            continue
        runs = [
            node.text for node in paragraph.iter()
            if isinstance(node.tag, str) and etree.QName(node).localname == "t" and node.text
        ]
        line = "".join(runs).strip()
        if line:
            paragraphs.append(line)
    return paragraphs


def extract_text_from_docx(path: str) -> str:
    """
    Extract raw text from a DOCX file using mammoth.

    Raises:
        DocumentExtractionError: If mammoth cannot read the file
    """
    try:
        with open(path, "rb") as docx_file:
            result = mammoth.extract_raw_text(docx_file)
    except Exception as e:
        raise DocumentExtractionError(f"DOCX unreadable {path}: {e}") from e

    for message in result.messages:
        logger.debug("docx_conversion_message", path=path, message=str(message))
    logger.info("docx_extracted", path=path, chars=len(result.value))
    return result.value


def libreoffice_available() -> bool:
    return shutil.which(SOFFICE_BINARY) is not None


def extract_text_via_libreoffice(path: str) -> str:
    """
    Convert a legacy binary document (HWP, DOC) to PDF and read its text.

    Raises:
        DocumentExtractionError: If LibreOffice is missing or conversion fails
    """
    if not libreoffice_available():
        raise DocumentExtractionError(
            "LibreOffice not installed; install it to convert HWP/DOC attachments"
        )

    source = Path(path)
    with tempfile.TemporaryDirectory(prefix="doc-convert-") as temp_dir:
        try:
            subprocess.run(
                [SOFFICE_BINARY, "--headless", "--convert-to", "pdf", "--outdir", temp_dir, str(source)],
                capture_output=True,
                text=True,
                check=True,
                timeout=CONVERSION_TIMEOUT,
            )
        except subprocess.CalledProcessError as e:
            raise DocumentExtractionError(f"soffice failed on {path}: {e.stderr}") from e
        except subprocess.TimeoutExpired as e:
            raise DocumentExtractionError(f"soffice timed out on {path}") from e
        except FileNotFoundError as e:
            raise DocumentExtractionError("soffice not found") from e

        pdf_path = Path(temp_dir) / f"{source.stem}.pdf"
        if not pdf_path.exists():
            raise DocumentExtractionError(f"soffice produced no PDF for {path}")

        logger.info("libreoffice_converted", path=path)
        return extract_text_from_pdf(str(pdf_path))

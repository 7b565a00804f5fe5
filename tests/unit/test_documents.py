"""Tests for attachment text extraction."""

import zipfile
from unittest.mock import patch

import pytest

from funding_ingest.core.exceptions import DocumentExtractionError
from funding_ingest.plugins.documents import DocumentTextExtractor
from funding_ingest.plugins.office import (
    extract_text_from_docx,
    extract_text_from_hwpx,
    extract_text_via_libreoffice,
)
from funding_ingest.plugins.pdf import extract_text_from_pdf

SECTION_TEMPLATE = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<hs:sec xmlns:hs="http://www.hancom.co.kr/hwpml/2011/section" '
    'xmlns:hp="http://www.hancom.co.kr/hwpml/2011/paragraph">{paragraphs}</hs:sec>'
)


def hwpx_paragraph(*runs: str) -> str:
    return "<hp:p>" + "".join(f"<hp:run><hp:t>{run}</hp:t></hp:run>" for run in runs) + "</hp:p>"


def write_hwpx(path, sections: dict) -> None:
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("mimetype", "application/hwp+zip")
        for name, paragraphs in sections.items():
            archive.writestr(name, SECTION_TEMPLATE.format(paragraphs="".join(paragraphs)))


class TestHwpx:
    """Tests for HWPX extraction."""

    def test_sections_in_numeric_order(self, tmp_path):
        """Test that sections are read in order and runs are joined."""
        path = tmp_path / "공고문.hwpx"
        write_hwpx(
            path,
            {
                "Contents/section1.xml": [hwpx_paragraph("2. 지원대상: ", "중소기업")],
                "Contents/section0.xml": [hwpx_paragraph("1. 사업개요"), hwpx_paragraph("")],
            },
        )

        assert extract_text_from_hwpx(str(path)) == "1. 사업개요\n2. 지원대상: 중소기업"

    def test_not_a_zip(self, tmp_path):
        """Test that a broken archive raises DocumentExtractionError."""
        path = tmp_path / "broken.hwpx"
        path.write_bytes(b"not a zip")
        with pytest.raises(DocumentExtractionError):
            extract_text_from_hwpx(str(path))


class TestOtherFormats:
    """Tests for PDF, DOCX and legacy formats."""

    def test_missing_pdf(self, tmp_path):
        """Test that a missing PDF raises DocumentExtractionError."""
        with pytest.raises(DocumentExtractionError):
            extract_text_from_pdf(str(tmp_path / "missing.pdf"))

    def test_corrupt_pdf(self, tmp_path):
        """Test that an unreadable PDF raises DocumentExtractionError."""
        path = tmp_path / "corrupt.pdf"
        path.write_bytes(b"%PDF-1.4 garbage")
        with pytest.raises(DocumentExtractionError):
            extract_text_from_pdf(str(path))

    def test_corrupt_docx(self, tmp_path):
        """Test that an unreadable DOCX raises DocumentExtractionError."""
        path = tmp_path / "form.docx"
        path.write_bytes(b"not a docx")
        with pytest.raises(DocumentExtractionError):
            extract_text_from_docx(str(path))

    def test_libreoffice_missing(self, tmp_path):
        """Test HWP conversion without LibreOffice installed."""
        path = tmp_path / "legacy.hwp"
        path.write_bytes(b"HWP Document File")
        with patch("funding_ingest.plugins.office.shutil.which", return_value=None):
            with pytest.raises(DocumentExtractionError, match="LibreOffice"):
                extract_text_via_libreoffice(str(path))


class TestDocumentTextExtractor:
    """Tests for DocumentTextExtractor class."""

    def test_supports_by_suffix(self):
        """Test suffix-based dispatch."""
        extractor = DocumentTextExtractor()
        assert extractor.supports("공고문.HWPX")
        assert extractor.supports("form.pdf")
        assert not extractor.supports("poster.jpg")

    def test_unsupported_file_raises(self, tmp_path):
        """Test extract_file with an unsupported suffix."""
        with pytest.raises(DocumentExtractionError):
            DocumentTextExtractor().extract_file(str(tmp_path / "poster.jpg"))

    def test_extract_folder(self, tmp_path):
        """Test concatenation and per-file outcomes."""
        (tmp_path / "안내.txt").write_text("지원대상: 중소기업", encoding="utf-8")
        (tmp_path / "본문.html").write_text("<p>업력 7년 이내</p><script>x()</script>", encoding="utf-8")
        (tmp_path / "빈파일.txt").write_text("   ", encoding="utf-8")
        (tmp_path / "poster.jpg").write_bytes(b"\xff\xd8")
        (tmp_path / "broken.hwpx").write_bytes(b"not a zip")

        document = DocumentTextExtractor().extract_folder(
            str(tmp_path), ["안내.txt", "본문.html", "빈파일.txt", "poster.jpg", "broken.hwpx"]
        )

        assert document.text == "[안내.txt]\n지원대상: 중소기업\n\n[본문.html]\n업력 7년 이내"
        assert document.parsed == ["안내.txt", "본문.html"]
        assert document.skipped == ["빈파일.txt", "poster.jpg"]
        assert list(document.failed) == ["broken.hwpx"]
        assert document.has_text

    def test_custom_converters(self, tmp_path):
        """Test injecting converters."""
        extractor = DocumentTextExtractor({".pdf": lambda path: "변환된 텍스트"})
        document = extractor.extract_folder(str(tmp_path), ["a.pdf", "b.hwpx"])
        assert document.parsed == ["a.pdf"]
        assert document.skipped == ["b.hwpx"]

    def test_no_folder(self):
        """Test announcements without attachments."""
        document = DocumentTextExtractor().extract_folder(None, [])
        assert document.text == ""
        assert not document.has_text

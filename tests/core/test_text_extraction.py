"""Tests for document text extraction."""

import io
import zipfile
from unittest.mock import MagicMock

import pytest

from examdesk.core.text_extraction import (
    TextExtractionError,
    VisionOcr,
    extract_text,
    member_document_type,
)

PAGE_ONE = "Q1. State Newton's first law of motion and give an everyday example."
PAGE_TWO = "Q2. Define momentum and derive its SI unit from the base quantities."


def _zip(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in files.items():
            archive.writestr(name, data)
    return buffer.getvalue()


class TestPdfExtraction:
    """Tests for PDFs with a text layer and scanned pages."""

    def test_text_pdf(self, make_pdf):
        result = extract_text(make_pdf(PAGE_ONE, PAGE_TWO), "pdf")
        assert result.method == "pdf_text"
        assert result.pages == 2
        assert "Newton's first law" in result.text
        assert "momentum" in result.text

    def test_scanned_page_uses_ocr(self, make_pdf):
        """Pages without a text layer are rendered and OCR'd."""
        ocr = MagicMock(return_value="Handwritten answer")
        result = extract_text(make_pdf(PAGE_ONE, ""), "pdf", ocr=ocr)

        assert result.method == "mixed"
        assert "Handwritten answer" in result.text
        ocr.assert_called_once()
        image, mime_type = ocr.call_args.args
        assert mime_type == "image/png"
        assert image.startswith(b"\x89PNG")

    def test_fully_scanned_pdf(self, make_pdf):
        ocr = MagicMock(return_value="page text")
        result = extract_text(make_pdf("", ""), "pdf", ocr=ocr)
        assert result.method == "ocr"
        assert ocr.call_count == 2

    def test_without_ocr_scanned_pages_are_empty(self, make_pdf):
        result = extract_text(make_pdf(""), "pdf")
        assert result.text == ""
        assert result.method == "pdf_text"

    def test_invalid_pdf(self):
        with pytest.raises(TextExtractionError):
            extract_text(b"not a pdf", "pdf")


class TestOtherTypes:
    def test_image_requires_ocr(self):
        with pytest.raises(TextExtractionError, match="OCR is required"):
            extract_text(b"\x89PNG", "image", file_name="page.png")

    def test_image_mime_from_name(self):
        ocr = MagicMock(return_value="  text  ")
        result = extract_text(b"jpegdata", "image", ocr=ocr, file_name="page.jpg")
        assert result.text == "text"
        assert ocr.call_args.args[1] == "image/jpeg"

    def test_plain_text(self):
        result = extract_text("Answer key: 42".encode(), "text")
        assert result.text == "Answer key: 42"
        assert result.method == "text"

    def test_unsupported_type(self):
        with pytest.raises(TextExtractionError, match="Unsupported"):
            extract_text(b"", "unknown")


class TestZipExtraction:
    """Tests for zip archives of pages."""

    def test_members_in_name_order(self, make_pdf):
        ocr = MagicMock(side_effect=["second page", "first page"])
        data = _zip(
            {
                "page2.png": b"png-2",
                "page1.pdf": make_pdf(PAGE_ONE),
                "notes.docx": b"skipped",
                "page3.png": b"png-3",
            }
        )
        result = extract_text(data, "zip", ocr=ocr)

        assert result.pages == 3
        assert result.method == "mixed"
        assert result.text.index("Newton's first law") < result.text.index("second page")
        assert ocr.call_count == 2

    def test_no_supported_members(self):
        with pytest.raises(TextExtractionError, match="no supported documents"):
            extract_text(_zip({"readme.docx": b"x"}), "zip")

    def test_bad_zip(self):
        with pytest.raises(TextExtractionError, match="Invalid zip"):
            extract_text(b"PK-not-really", "zip")

    def test_member_document_type(self):
        assert member_document_type("answers.TXT") == "text"
        assert member_document_type("scan.jpeg") == "image"
        assert member_document_type("README") == "unknown"


class TestVisionOcr:
    def test_encodes_image_as_data_url(self, mock_llm_client):
        mock_llm_client.vision_text.return_value = " recognised text \n"
        ocr = VisionOcr(mock_llm_client)

        assert ocr(b"\x89PNG", "image/png") == "recognised text"
        kwargs = mock_llm_client.vision_text.call_args.kwargs
        assert kwargs["image_url"].startswith("data:image/png;base64,")
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["temperature"] == 0.3

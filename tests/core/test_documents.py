"""Tests for URL-based document helpers."""

import pytest

from examdesk.core.documents import (
    add_cache_buster,
    detect_document_type,
    extract_filename_from_url,
    get_file_extension,
    is_image_document,
    is_pdf_document,
    is_zip_document,
    needs_ocr,
    sanitize_topic,
)


class TestDetectDocumentType:
    """Tests for detect_document_type and the per-type checks."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://cdn.example/paper.pdf", "pdf"),
            ("https://cdn.example/PAPER.PDF", "pdf"),
            ("https://cdn.example/blob?type=application/pdf", "pdf"),
            ("https://cdn.example/blob?content-type=pdf", "pdf"),
            ("https://cdn.example/scans.zip", "zip"),
            ("https://cdn.example/scans.zip?download=1", "zip"),
            ("https://cdn.example/page1.JPG", "image"),
            ("https://cdn.example/page1.webp", "image"),
            ("https://cdn.example/blob?ct=image/png", "image"),
            ("https://cdn.example/notes.docx", "unknown"),
            ("", "unknown"),
        ],
    )
    def test_types(self, url, expected):
        assert detect_document_type(url) == expected

    def test_pdf_wins_over_zip(self):
        """Checks run pdf, zip, image in that order."""
        assert detect_document_type("https://cdn.example/archive.zip/file.pdf") == "pdf"

    def test_pdf_suffix_must_be_at_end(self):
        assert not is_pdf_document("https://cdn.example/file.pdf.txt")

    def test_empty_urls(self):
        assert not is_pdf_document("")
        assert not is_zip_document("")
        assert not is_image_document("")


class TestNeedsOcr:
    @pytest.mark.parametrize(
        "url",
        [
            "https://cdn.example/sheet.pdf",
            "https://cdn.example/sheet.PNG",
            "https://cdn.example/sheet.jpeg?cache=1",
            "https://cdn.example/sheet.jpg",
        ],
    )
    def test_scans_need_ocr(self, url):
        assert needs_ocr(url)

    def test_other_urls(self):
        assert not needs_ocr("https://cdn.example/answers.txt")
        assert not needs_ocr("")


class TestNaming:
    """Tests for topic sanitizing and file name helpers."""

    def test_sanitize_topic(self):
        assert sanitize_topic("Laws of Motion (Part 1)") == "Laws_of_Motion_Part_1_"

    def test_sanitize_collapses_underscores(self):
        assert sanitize_topic("a  --  b") == "a_b"

    def test_extract_filename(self):
        url = "https://cdn.example/files/subjects/s1/Unit%201%20paper.pdf?cache=5"
        assert extract_filename_from_url(url) == "Unit 1 paper.pdf"

    def test_extract_filename_invalid_url(self):
        with pytest.raises(ValueError):
            extract_filename_from_url("not a url")

    def test_file_extension(self):
        assert get_file_extension("paper.final.docx") == "docx"
        assert get_file_extension("paper") == "pdf"
        assert get_file_extension("paper.") == "pdf"

    def test_cache_buster(self):
        assert add_cache_buster("https://x/a.pdf", 42) == "https://x/a.pdf?cache=42"
        assert add_cache_buster("https://x/a.pdf?token=t", 42) == "https://x/a.pdf?token=t&cache=42"

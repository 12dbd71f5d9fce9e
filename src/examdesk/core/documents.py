"""Document helpers: type sniffing from URLs and file naming.

The checks work on URLs only (no download), so they are cheap enough to
run on every listing row.
"""

from __future__ import annotations

import re
from typing import Literal
from urllib.parse import unquote, urlsplit

DocumentType = Literal["pdf", "zip", "image", "unknown"]

IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp", "bmp", "tiff", "tif")
OCR_MARKERS = (".jpg", ".jpeg", ".png", ".pdf")

_PDF_SUFFIX_RE = re.compile(r"\.pdf$", re.IGNORECASE)
_ZIP_RE = re.compile(r"\.zip", re.IGNORECASE)
_IMAGE_SUFFIX_RE = re.compile(r"\.(" + "|".join(IMAGE_EXTENSIONS) + r")$", re.IGNORECASE)


def is_pdf_document(url: str) -> bool:
    if not url:
        return False
    return bool(
        _PDF_SUFFIX_RE.search(url)
        or "application/pdf" in url
        or "content-type=pdf" in url
    )


def is_zip_document(url: str) -> bool:
    if not url:
        return False
    return bool(_ZIP_RE.search(url))


def is_image_document(url: str) -> bool:
    if not url:
        return False
    return bool(_IMAGE_SUFFIX_RE.search(url) or "image/" in url)


def detect_document_type(url: str) -> DocumentType:
    """Classify a document URL as pdf, zip, image or unknown.

    Checks run in that order, so a URL matching several patterns gets
    the first match.
    """
    if not url:
        return "unknown"
    if is_pdf_document(url):
        return "pdf"
    if is_zip_document(url):
        return "zip"
    if is_image_document(url):
        return "image"
    return "unknown"


def needs_ocr(url: str) -> bool:
    """True when a student answer URL points at a scan that must be OCR'd."""
    if not url:
        return False
    lowered = url.lower()
    return any(marker in lowered for marker in OCR_MARKERS)


def sanitize_topic(topic: str) -> str:
    """Make a topic safe for use inside storage keys."""
    return re.sub(r"_+", "_", re.sub(r"[^a-zA-Z0-9]", "_", topic))


def extract_filename_from_url(url: str) -> str:
    """Last path segment of a URL, URL-decoded.

    Raises:
        ValueError: If the URL has no scheme or host
    """
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Invalid file URL format: {url!r}")
    return unquote(parts.path.rsplit("/", 1)[-1])


def get_file_extension(filename: str) -> str:
    """Extension without the dot; ``pdf`` when there is none."""
    if "." not in filename:
        return "pdf"
    ext = filename.rsplit(".", 1)[-1]
    return ext or "pdf"


def add_cache_buster(url: str, timestamp: int) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}cache={timestamp}"

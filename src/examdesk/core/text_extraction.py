"""Text extraction for stored documents.

Responsibilities:
- Extract text from PDFs page by page (PyMuPDF)
- Fall back to OCR for scanned pages (too little selectable text)
- OCR single images
- Walk zip archives and extract every supported member
- Decode plain text files

OCR is pluggable: any callable ``(image_bytes, mime_type) -> str``.
``VisionOcr`` implements it with a vision-capable chat model.

Dependencies:
- pymupdf (fitz)
"""

from __future__ import annotations

import base64
import io
import zipfile
from dataclasses import dataclass
from typing import Callable

import fitz
import structlog

from examdesk.config import load_app_config
from examdesk.core.documents import detect_document_type
from examdesk.llm.client import LLMClient
from examdesk.prompts.registry import get_prompt
from examdesk.storage.object_store import guess_content_type

logger = structlog.get_logger(__name__)

# Constants
MIN_CHARS_PER_PAGE = 50  # Below this, the page is treated as scanned
OCR_RENDER_DPI = 150
TEXT_EXTENSIONS = ("txt", "md", "csv")
MAX_ZIP_DEPTH = 3

OcrFunc = Callable[[bytes, str], str]


@dataclass
class ExtractedText:
    """Result of text extraction."""

    text: str
    pages: int
    method: str  # "pdf_text", "ocr", "mixed", "text"


class TextExtractionError(Exception):
    """Raised when a document cannot be turned into text."""

    pass


def extract_text(
    data: bytes,
    document_type: str,
    ocr: OcrFunc | None = None,
    file_name: str = "",
) -> ExtractedText:
    """Extract text from document bytes.

    Args:
        data: Raw document bytes
        document_type: "pdf", "image", "zip" or "text"
        ocr: OCR callable for images and scanned PDF pages
        file_name: Original name, used to pick the image MIME type

    Returns:
        ExtractedText with joined text, page count and method

    Raises:
        TextExtractionError: Unsupported type, unreadable document, or OCR
            needed but not available
    """
    return _extract(data, document_type, ocr, file_name, depth=0)


def _extract(
    data: bytes,
    document_type: str,
    ocr: OcrFunc | None,
    file_name: str,
    depth: int,
) -> ExtractedText:
    if document_type == "pdf":
        return _extract_pdf(data, ocr)
    if document_type == "image":
        return _extract_image(data, ocr, file_name)
    if document_type == "zip":
        return _extract_zip(data, ocr, depth)
    if document_type == "text":
        return ExtractedText(text=data.decode("utf-8", errors="replace"), pages=1, method="text")
    raise TextExtractionError(f"Unsupported document type: {document_type}")


def _extract_pdf(data: bytes, ocr: OcrFunc | None) -> ExtractedText:
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise TextExtractionError(f"Could not open PDF: {e}") from e

    if doc.is_encrypted:
        doc.close()
        raise TextExtractionError("PDF is password-protected")

    parts = []
    text_pages = 0
    ocr_pages = 0

    try:
        for page_num in range(len(doc)):
            page = doc[page_num]
            page_text = page.get_text()

            if len(page_text.strip()) >= MIN_CHARS_PER_PAGE or ocr is None:
                text_pages += 1
                if page_text.strip():
                    parts.append(page_text)
                continue

            # Scanned page: render and OCR
            pix = page.get_pixmap(dpi=OCR_RENDER_DPI)
            ocr_text = ocr(pix.tobytes("png"), "image/png")
            ocr_pages += 1
            if ocr_text.strip():
                parts.append(ocr_text)

        total_pages = len(doc)
    finally:
        doc.close()

    if ocr_pages and text_pages:
        method = "mixed"
    elif ocr_pages:
        method = "ocr"
    else:
        method = "pdf_text"

    logger.info(
        "text_extraction.pdf",
        total_pages=total_pages,
        text_pages=text_pages,
        ocr_pages=ocr_pages,
    )

    return ExtractedText(text="\n\n".join(parts).strip(), pages=total_pages, method=method)


def _extract_image(data: bytes, ocr: OcrFunc | None, file_name: str) -> ExtractedText:
    if ocr is None:
        raise TextExtractionError("OCR is required to extract text from images")

    mime_type = guess_content_type(file_name) if file_name else "image/png"
    if not mime_type.startswith("image/"):
        mime_type = "image/png"

    text = ocr(data, mime_type)
    logger.info("text_extraction.image", chars=len(text))
    return ExtractedText(text=text.strip(), pages=1, method="ocr")


def _extract_zip(data: bytes, ocr: OcrFunc | None, depth: int) -> ExtractedText:
    if depth >= MAX_ZIP_DEPTH:
        raise TextExtractionError("Zip archives nested too deeply")

    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise TextExtractionError(f"Invalid zip archive: {e}") from e

    parts = []
    pages = 0
    methods = set()

    with archive:
        # Sorted so page images (page1.png, page2.png...) keep their order
        for name in sorted(archive.namelist()):
            if name.endswith("/"):
                continue
            member_type = member_document_type(name)
            if member_type == "unknown":
                logger.warning("text_extraction.zip_member_skipped", member=name)
                continue

            result = _extract(archive.read(name), member_type, ocr, name, depth + 1)
            pages += result.pages
            methods.add(result.method)
            if result.text:
                parts.append(result.text)

    if not methods:
        raise TextExtractionError("Zip archive contains no supported documents")

    method = methods.pop() if len(methods) == 1 else "mixed"
    logger.info("text_extraction.zip", members=len(parts), pages=pages)
    return ExtractedText(text="\n\n".join(parts), pages=pages, method=method)


def member_document_type(name: str) -> str:
    """Document type for a file name, including plain text files."""
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    if ext in TEXT_EXTENSIONS:
        return "text"
    return detect_document_type(name)


class VisionOcr:
    """OCR through a vision-capable chat model."""

    def __init__(
        self,
        client: LLMClient,
        model: str | None = None,
        temperature: float | None = None,
    ):
        config = load_app_config().evaluation
        self.client = client
        self.model = model or config.ocr_model
        self.temperature = config.ocr_temperature if temperature is None else temperature

    def __call__(self, image: bytes, mime_type: str = "image/png") -> str:
        encoded = base64.b64encode(image).decode("ascii")
        return self.from_url(f"data:{mime_type};base64,{encoded}")

    def from_url(self, image_url: str) -> str:
        """OCR an image the model can fetch (public or data: URL)."""
        text = self.client.vision_text(
            system_prompt=get_prompt("evaluation/ocr_system"),
            instruction=get_prompt("evaluation/ocr_instruction"),
            image_url=image_url,
            temperature=self.temperature,
            model=self.model,
        )
        logger.debug("vision_ocr.completed", chars=len(text))
        return text.strip()

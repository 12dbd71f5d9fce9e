"""Upload router: named upload endpoints with per-type size limits.

Each endpoint accepts a fixed set of content types, each with its own
maximum size. Uploads that pass validation are written to the object
store under ``{key_prefix}/{uuid}-{safe_name}``.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Any

import structlog

from examdesk.storage.object_store import LocalObjectStore

logger = structlog.get_logger(__name__)

DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

# content type (or "image/*") -> max size
UPLOAD_ENDPOINTS: dict[str, dict[str, str]] = {
    "documentUploader": {
        "application/pdf": "8MB",
    },
    "studyMaterialUploader": {
        "application/pdf": "16MB",
        "image/*": "4MB",
        DOCX_TYPE: "8MB",
        PPTX_TYPE: "16MB",
    },
    "answerSheetUploader": {
        "application/pdf": "12MB",
    },
    # question papers and answer keys: formats text extraction can read
    "gradingDocumentUploader": {
        "application/pdf": "16MB",
        "image/*": "4MB",
    },
}

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(B|KB|MB|GB)\s*$", re.IGNORECASE)
_SIZE_UNITS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


class UploadRejectedError(Exception):
    """Base exception for rejected uploads."""

    pass


class UnknownEndpointError(UploadRejectedError):
    def __init__(self, endpoint: str):
        self.endpoint = endpoint
        super().__init__(f"Unknown upload endpoint: {endpoint}")


class UnsupportedFileTypeError(UploadRejectedError):
    def __init__(self, endpoint: str, content_type: str):
        self.endpoint = endpoint
        self.content_type = content_type
        super().__init__(f"File type '{content_type}' is not allowed for {endpoint}")


class FileTooLargeError(UploadRejectedError):
    def __init__(self, file_name: str, size: int, max_size: int):
        self.file_name = file_name
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"File '{file_name}' is {size} bytes, exceeds limit of {max_size} bytes"
        )


@dataclass
class UploadPolicy:
    """Size limit for one content type on one endpoint."""

    endpoint: str
    content_type: str
    max_size: int


@dataclass
class UploadResult:
    """A completed upload."""

    url: str
    key: str
    file_name: str
    file_size: int
    content_type: str
    endpoint: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "key": self.key,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "content_type": self.content_type,
            "endpoint": self.endpoint,
        }


def parse_size(value: str) -> int:
    """Parse a size like ``"8MB"`` into bytes."""
    match = _SIZE_RE.match(value)
    if not match:
        raise ValueError(f"Invalid size: {value!r}")
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit.upper()])


def resolve_policy(endpoint: str, content_type: str) -> UploadPolicy:
    """Find the policy that applies to ``content_type`` on ``endpoint``.

    Raises:
        UnknownEndpointError: Endpoint is not registered
        UnsupportedFileTypeError: Endpoint does not accept this type
    """
    rules = UPLOAD_ENDPOINTS.get(endpoint)
    if rules is None:
        raise UnknownEndpointError(endpoint)

    content_type = (content_type or "").split(";")[0].strip().lower()

    if content_type in rules:
        return UploadPolicy(endpoint, content_type, parse_size(rules[content_type]))

    family = content_type.split("/")[0]
    wildcard = f"{family}/*"
    if family and wildcard in rules:
        return UploadPolicy(endpoint, content_type, parse_size(rules[wildcard]))

    raise UnsupportedFileTypeError(endpoint, content_type or "unknown")


def safe_file_name(file_name: str) -> str:
    """Strip directories and characters that are awkward in keys and URLs."""
    name = file_name.replace("\\", "/").rsplit("/", 1)[-1]
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    return name or "file"


def upload(
    store: LocalObjectStore,
    endpoint: str,
    file_name: str,
    data: bytes,
    content_type: str,
    key_prefix: str = "uploads",
) -> UploadResult:
    """Validate a file against the endpoint policy and store it.

    Raises:
        UnknownEndpointError, UnsupportedFileTypeError, FileTooLargeError
    """
    policy = resolve_policy(endpoint, content_type)

    if len(data) > policy.max_size:
        logger.warning(
            "upload.too_large",
            endpoint=endpoint,
            file_name=file_name,
            size=len(data),
            max_size=policy.max_size,
        )
        raise FileTooLargeError(file_name, len(data), policy.max_size)

    key = f"{key_prefix.strip('/')}/{uuid.uuid4().hex}-{safe_file_name(file_name)}"
    stored = store.put(key, data, policy.content_type)

    logger.info(
        "upload.completed",
        endpoint=endpoint,
        key=key,
        size=stored.size,
        content_type=policy.content_type,
    )

    return UploadResult(
        url=stored.url,
        key=key,
        file_name=file_name,
        file_size=stored.size,
        content_type=policy.content_type,
        endpoint=endpoint,
    )

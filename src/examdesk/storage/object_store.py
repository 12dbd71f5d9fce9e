"""Local object storage with public and signed URLs.

Objects live under ``{root}/{bucket}/{key}`` on disk and are served by the
web app at ``{public_base_url}/{bucket}/{key}``. Signed URLs carry a
``token`` query parameter produced by itsdangerous; the serving route
verifies it before returning the object.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, unquote, urlsplit

import structlog
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

logger = structlog.get_logger(__name__)

SIGNING_SALT = "examdesk-storage-url"


class StorageError(Exception):
    """Base exception for object storage errors."""

    pass


class ObjectNotFoundError(StorageError):
    """Raised when a key does not exist in the bucket."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Object not found: {key}")


class InvalidKeyError(StorageError):
    """Raised for empty or path-traversing keys."""

    pass


class InvalidSignatureError(StorageError):
    """Raised when a signed-URL token is invalid or expired."""

    def __init__(self, message: str, expired: bool = False):
        self.expired = expired
        super().__init__(message)


@dataclass
class StoredObject:
    """Metadata for an object written to the store."""

    key: str
    size: int
    content_type: str
    url: str


class LocalObjectStore:
    """Filesystem-backed bucket."""

    def __init__(
        self,
        root: Path,
        public_base_url: str,
        secret: str,
        bucket: str = "files",
        signed_ttl_s: int = 3600,
    ):
        self.root = Path(root)
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.signed_ttl_s = signed_ttl_s
        self._serializer = URLSafeTimedSerializer(secret, salt=SIGNING_SALT)
        self._bucket_dir = self.root / bucket
        self._bucket_dir.mkdir(parents=True, exist_ok=True)

    # -------------------------------------------------------------------------
    # Objects
    # -------------------------------------------------------------------------

    def put(self, key: str, data: bytes, content_type: str | None = None) -> StoredObject:
        """Write an object, replacing any existing one with the same key."""
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

        if not content_type:
            content_type = guess_content_type(key)

        logger.debug("storage.put", key=key, size=len(data))
        return StoredObject(
            key=key,
            size=len(data),
            content_type=content_type,
            url=self.public_url(key),
        )

    def get(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.is_file():
            raise ObjectNotFoundError(key)
        return path.read_bytes()

    def exists(self, key: str) -> bool:
        try:
            return self._path_for(key).is_file()
        except InvalidKeyError:
            return False

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        if not path.is_file():
            return False
        path.unlink()
        logger.debug("storage.deleted", key=key)
        return True

    def copy(self, source_key: str, dest_key: str) -> StoredObject:
        """Copy an object within the bucket."""
        data = self.get(source_key)
        return self.put(dest_key, data, guess_content_type(source_key))

    def list(self, prefix: str = "") -> list[str]:
        """Keys starting with ``prefix``, sorted."""
        keys = []
        for path in self._bucket_dir.rglob("*"):
            if path.is_file():
                key = path.relative_to(self._bucket_dir).as_posix()
                if key.startswith(prefix):
                    keys.append(key)
        return sorted(keys)

    # -------------------------------------------------------------------------
    # URLs
    # -------------------------------------------------------------------------

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{quote(key)}"

    def signed_url(self, key: str, expires_in: int | None = None) -> str:
        """Public URL plus a ``token`` granting access to ``key``.

        Args:
            key: Object key
            expires_in: Lifetime in seconds (store TTL if omitted)
        """
        self._path_for(key)
        token = self._serializer.dumps({"key": key, "ttl": expires_in or self.signed_ttl_s})
        return f"{self.public_url(key)}?token={token}"

    def verify_token(self, token: str, max_age: int | None = None) -> str:
        """Return the key a token was issued for.

        Args:
            token: Token from a signed URL
            max_age: Override the lifetime recorded in the token

        Raises:
            InvalidSignatureError: Token tampered with or expired
        """
        try:
            payload = self._serializer.loads(token)
            if not isinstance(payload, dict) or not payload.get("key"):
                raise InvalidSignatureError("Invalid signed URL token")
            ttl = max_age or int(payload.get("ttl") or self.signed_ttl_s)
            self._serializer.loads(token, max_age=ttl)
        except SignatureExpired as e:
            raise InvalidSignatureError("Signed URL has expired", expired=True) from e
        except BadSignature as e:
            raise InvalidSignatureError("Invalid signed URL token") from e

        return payload["key"]

    def key_from_url(self, url: str) -> str | None:
        """Resolve a URL issued by this store back to its key.

        Query strings (tokens, cache busters) are ignored. Returns None for
        URLs that do not point into this bucket.
        """
        if not url:
            return None
        base = f"{self.public_base_url}/{self.bucket}/"
        parts = urlsplit(url)
        bare = f"{parts.scheme}://{parts.netloc}{parts.path}" if parts.scheme else parts.path
        if not bare.startswith(base):
            return None
        key = unquote(bare[len(base):])
        return key or None

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _path_for(self, key: str) -> Path:
        validate_key(key)
        return self._bucket_dir / key


def validate_key(key: str) -> None:
    """Reject keys that are empty or would escape the bucket directory."""
    if not key or not key.strip():
        raise InvalidKeyError("Object key must not be empty")
    if key.startswith("/") or "\\" in key:
        raise InvalidKeyError(f"Invalid object key: {key}")
    if any(part in ("", ".", "..") for part in key.split("/")):
        raise InvalidKeyError(f"Invalid object key: {key}")


def guess_content_type(key: str) -> str:
    content_type, _ = mimetypes.guess_type(key)
    return content_type or "application/octet-stream"


def create_object_store() -> LocalObjectStore:
    """Build the store from application config."""
    from examdesk.config import get_signing_secret, load_app_config

    config = load_app_config()
    return LocalObjectStore(
        root=config.storage_dir,
        public_base_url=config.storage.public_base_url,
        secret=get_signing_secret(),
        bucket=config.storage.bucket,
        signed_ttl_s=config.storage.signed_url_ttl_s,
    )

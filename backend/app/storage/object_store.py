"""Binary object storage with time-limited signed retrieval URLs.

Objects live under ``<root>/<user_id>/<random>.<ext>``. They are never served
by a permanent link: readers get a URL carrying an expiry timestamp and an
HMAC-SHA256 signature over ``path:expires``.
"""

import hashlib
import hmac
import uuid
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import quote, urlencode

from backend.app.config import Settings
from backend.app.errors import StorageError


class ObjectStore(Protocol):
    """Protocol for object store implementations."""

    def put(self, user_id: uuid.UUID, file_name: str, data: bytes) -> str:
        """Store bytes and return the object path."""
        ...

    def read(self, path: str) -> bytes:
        """Read an object's bytes."""
        ...

    def exists(self, path: str) -> bool:
        """Check whether an object exists."""
        ...

    def remove(self, path: str) -> None:
        """Remove an object. Missing objects are not an error."""
        ...

    def signed_url(self, path: str, ttl_seconds: int, now: datetime | None = None) -> str:
        """Build a URL that grants read access until ``now + ttl_seconds``."""
        ...

    def verify(self, path: str, expires: int, signature: str, now: datetime | None = None) -> bool:
        """Check a signature and that it has not expired."""
        ...


class LocalObjectStore:
    """Filesystem-backed object store, partitioned by owner id."""

    def __init__(self, root: str | Path, secret: str, base_url: str = "") -> None:
        self._root = Path(root).resolve()
        self._secret = secret.encode("utf-8")
        self._base_url = base_url.rstrip("/")

    def put(self, user_id: uuid.UUID, file_name: str, data: bytes) -> str:
        """Store bytes under the user's partition with a random name."""
        suffix = PurePosixPath(file_name).suffix.lower()
        path = f"{user_id}/{uuid.uuid4().hex}{suffix}"
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write object {path}: {e}") from e
        return path

    def read(self, path: str) -> bytes:
        """Read an object's bytes."""
        try:
            return self._resolve(path).read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read object {path}: {e}") from e

    def exists(self, path: str) -> bool:
        """Check whether an object exists."""
        return self._resolve(path).is_file()

    def remove(self, path: str) -> None:
        """Remove an object. Missing objects are not an error."""
        try:
            self._resolve(path).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove object {path}: {e}") from e

    def signed_url(self, path: str, ttl_seconds: int, now: datetime | None = None) -> str:
        """Build a signed retrieval URL valid for ``ttl_seconds``."""
        now = now or datetime.now(timezone.utc)
        expires = int(now.timestamp()) + ttl_seconds
        query = urlencode({"expires": expires, "signature": self._sign(path, expires)})
        return f"{self._base_url}/files/{quote(path)}?{query}"

    def verify(self, path: str, expires: int, signature: str, now: datetime | None = None) -> bool:
        """Check a signature and that it has not expired."""
        now = now or datetime.now(timezone.utc)
        if int(now.timestamp()) > expires:
            return False
        return hmac.compare_digest(self._sign(path, expires), signature)

    def _sign(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def _resolve(self, path: str) -> Path:
        """Map an object path into the root, refusing anything that escapes it."""
        target = (self._root / path).resolve()
        if not target.is_relative_to(self._root) or target == self._root:
            raise StorageError(f"Invalid object path: {path}")
        return target


def create_object_store(settings: Settings) -> LocalObjectStore:
    """Build the object store from settings."""
    return LocalObjectStore(
        root=settings.storage_root,
        secret=settings.signing_secret.get_secret_value(),
        base_url=settings.public_base_url,
    )

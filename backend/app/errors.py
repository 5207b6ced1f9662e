"""Error taxonomy for the document pipeline.

Routes translate these into HTTP responses; see ``backend.app.api.routes.documents``.
"""


class TravaultError(Exception):
    """Base class for all application errors."""


class UnsupportedFormatError(TravaultError):
    """Uploaded file type is not one the normalizer can handle."""

    def __init__(self, mime_type: str, file_name: str = "") -> None:
        self.mime_type = mime_type
        self.file_name = file_name
        super().__init__(f"Unsupported file format: {mime_type or 'unknown'} ({file_name})")


class FileTooLargeError(TravaultError):
    """Uploaded file exceeds the configured size limit."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"File is {size} bytes, limit is {limit} bytes")


class FileReadError(TravaultError):
    """Uploaded file could not be read."""


class ExtractionError(TravaultError):
    """Extraction service call failed (network, malformed response, schema violation)."""


class PersistenceError(TravaultError):
    """Database write or read failed.

    ``detail`` carries the raw backend message so missing tables or columns
    can be diagnosed from the client.
    """

    def __init__(self, message: str, detail: str) -> None:
        self.detail = detail
        super().__init__(f"{message}: {detail}")


class DuplicateDocumentError(TravaultError):
    """A document with the same fingerprint already exists for this user."""

    def __init__(self, fingerprint: str) -> None:
        self.fingerprint = fingerprint
        super().__init__(f"Duplicate document: {fingerprint}")


class StorageError(TravaultError):
    """Object store operation failed."""

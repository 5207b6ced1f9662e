"""Content fingerprinting for duplicate detection."""

import hashlib

FINGERPRINT_LENGTH = 64


def fingerprint_bytes(content: bytes) -> str:
    """Return the SHA-256 hex digest of the exact file bytes.

    Used as an equality key for duplicate detection, not for security.
    """
    return hashlib.sha256(content).hexdigest()

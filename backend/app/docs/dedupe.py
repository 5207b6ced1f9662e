"""Duplicate gate - fast-path check for an existing fingerprint."""

from backend.app.db.context import RequestContext
from backend.app.db.repositories import DocumentRepository


async def is_duplicate(
    repo: DocumentRepository, ctx: RequestContext, fingerprint: str
) -> bool:
    """Check whether the user already stored a file with these exact bytes.

    Not atomic with the later insert. Two concurrent uploads of the same file
    can both pass; the (user_id, content_hash) unique constraint then rejects
    the second insert with DuplicateDocumentError.

    Args:
        repo: Document repository
        ctx: Request context (tenancy)
        fingerprint: Content digest from fingerprint_bytes

    Returns:
        True if a live document with this fingerprint exists for the user
    """
    if not fingerprint:
        return False
    return await repo.fingerprint_exists(ctx, fingerprint)

"""Content storage for transcripts, kept as opaque blobs in Postgres."""

import logging

from cicero import db

logger = logging.getLogger(__name__)


async def store_text(text: str, content_type: str = "text/plain") -> str:
    """Store text and return its storage reference."""
    ref = await db.insert_blob(text.encode("utf-8"), content_type)
    logger.debug(f"Stored {len(text)} chars as blob {ref}")
    return ref


async def get_text(ref: str) -> str | None:
    """Read text back from storage. Returns None if the reference is unknown."""
    content = await db.get_blob(ref)
    if content is None:
        return None
    return content.decode("utf-8")

import datetime
import hashlib
import logging
from pathlib import Path
from typing import BinaryIO

from dateutil.parser import parse as parse_date

from aptpool.models import FileDigests

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def try_parse_date(date_str: str | None) -> datetime.datetime | None:
    """Try to parse a date string into a timestamp.

    Args:
        date_str: The date string to parse (e.g., from a Release file Date field)

    Returns:
        The parsed timestamp, or None if parsing failed or date_str is None
    """

    try:
        return parse_date(date_str) if date_str else None
    except Exception as e:
        logger.debug(f"Failed to parse date '{date_str}': {e}")
        return None


def digest_stream(handle: BinaryIO) -> FileDigests:
    """Compute size, MD5, SHA1 and SHA256 of a binary stream in a single pass."""
    md5 = hashlib.md5()
    sha1 = hashlib.sha1()
    sha256 = hashlib.sha256()
    size = 0
    while chunk := handle.read(CHUNK_SIZE):
        size += len(chunk)
        md5.update(chunk)
        sha1.update(chunk)
        sha256.update(chunk)
    return FileDigests(size=size, md5=md5.hexdigest(), sha1=sha1.hexdigest(), sha256=sha256.hexdigest())


def file_digests(path: Path) -> FileDigests:
    """Compute size and digests of the file at path."""
    with path.open("rb") as handle:
        return digest_stream(handle)


def raise_walk_error(error: OSError) -> None:
    """``Path.walk`` error callback that propagates the error instead of skipping the directory."""
    raise error

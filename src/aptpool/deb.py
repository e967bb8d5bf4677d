"""Metadata extraction from .deb package archives.

A .deb is an ar archive whose members include ``debian-binary``, a
``control.tar[.<compression>]`` archive and a ``data.tar[.<compression>]``
archive. The control archive holds the ``control`` file whose fields
describe the package.
"""

import gzip
import io
import logging
import tarfile
import zlib
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO, NamedTuple

from aptpool.control import parse_control, record_from_fields
from aptpool.exceptions import (
    ArchiveFormatError,
    ArchiveReadError,
    ControlNotFoundError,
    UnsupportedCompressionError,
)
from aptpool.models import PackageRecord
from aptpool.utils import digest_stream

logger = logging.getLogger(__name__)

AR_MAGIC = b"!<arch>\n"
AR_HEADER_SIZE = 60
AR_HEADER_END = b"`\n"
AR_BSD_LONG_NAME = "#1/"

CONTROL_MEMBER = "control.tar"
CONTROL_FILE = "control"

# suffixes of control.tar members we recognise but cannot decompress
UNSUPPORTED_COMPRESSION = {
    ".xz": "xz",
    ".zst": "zstd",
    ".bz2": "bzip2",
    ".lzma": "lzma",
}


class ArMember(NamedTuple):
    """A member of an ar archive; offset is where its data starts in the file."""

    name: str
    offset: int
    size: int


def iter_ar_members(handle: BinaryIO, path: Path | None = None) -> Iterator[ArMember]:
    """Iterate over the members of an ar archive.

    The handle may be moved by the caller between iterations, each step seeks
    to the next header itself.

    Raises:
        ArchiveFormatError: on a bad global header or malformed member header
    """
    if handle.read(len(AR_MAGIC)) != AR_MAGIC:
        raise ArchiveFormatError(path, "not an ar archive (bad magic)")

    offset = len(AR_MAGIC)
    while True:
        handle.seek(offset)
        header = handle.read(AR_HEADER_SIZE)
        if not header:
            return
        if header == b"\n":
            # some writers pad the final member with a newline past the even boundary
            return
        if len(header) < AR_HEADER_SIZE:
            raise ArchiveFormatError(path, f"truncated ar member header at offset {offset}")
        if header[58:60] != AR_HEADER_END:
            raise ArchiveFormatError(path, f"bad ar member header terminator at offset {offset}")

        name = header[0:16].decode("ascii", errors="replace").rstrip()
        try:
            size = int(header[48:58].decode("ascii").strip())
        except ValueError as e:
            raise ArchiveFormatError(path, f"bad ar member size at offset {offset}") from e

        data_offset = offset + AR_HEADER_SIZE
        data_size = size
        if name.startswith(AR_BSD_LONG_NAME):
            try:
                name_len = int(name[len(AR_BSD_LONG_NAME) :])
            except ValueError as e:
                raise ArchiveFormatError(path, f"bad BSD ar member name {name!r}") from e
            name = handle.read(name_len).decode("utf-8", errors="replace").rstrip("\0")
            data_offset += name_len
            data_size -= name_len

        yield ArMember(name.removesuffix("/"), data_offset, data_size)

        offset += AR_HEADER_SIZE + size
        offset += offset % 2


def _read_member(handle: BinaryIO, member: ArMember, path: Path | None) -> bytes:
    handle.seek(member.offset)
    data = handle.read(member.size)
    if len(data) != member.size:
        raise ArchiveFormatError(path, f"truncated ar member {member.name!r}")
    return data


def _decompress_control(member_name: str, payload: bytes, path: Path | None) -> bytes:
    suffix = member_name[len(CONTROL_MEMBER) :]
    match suffix:
        case "":
            return payload
        case ".gz":
            try:
                return gzip.decompress(payload)
            except (OSError, EOFError, zlib.error) as e:
                raise ArchiveFormatError(path, f"corrupt gzip stream in {member_name}: {e}") from e
        case _:
            raise UnsupportedCompressionError(path, suffix, UNSUPPORTED_COMPRESSION.get(suffix))


def _find_control_in_tar(data: bytes, path: Path | None) -> bytes:
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as tar:
            for member in tar:
                if member.name.removeprefix("./") != CONTROL_FILE or not member.isfile():
                    continue
                extracted = tar.extractfile(member)
                if extracted is None:
                    break
                return extracted.read()
    except tarfile.TarError as e:
        raise ArchiveFormatError(path, f"malformed control archive: {e}") from e
    raise ControlNotFoundError(path, "control file not found in control archive")


def read_control_bytes(handle: BinaryIO, path: Path | None = None) -> bytes:
    """Return the raw contents of the control file from a .deb stream positioned at its start."""
    for member in iter_ar_members(handle, path):
        if not member.name.startswith(CONTROL_MEMBER):
            continue
        payload = _read_member(handle, member, path)
        logger.debug(f"Found {member.name} ({member.size} bytes) in {path}")
        return _find_control_in_tar(_decompress_control(member.name, payload, path), path)
    raise ControlNotFoundError(path, "no control.tar member in archive")


def _decode_control(data: bytes, path: Path) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        # every byte maps to a character in latin-1, so nothing is dropped
        logger.debug(f"Control file of {path} is not UTF-8 ({e}), decoding as latin-1")
        return data.decode("latin-1")


def extract(path: Path | str) -> PackageRecord:
    """Extract package metadata, size and digests from a .deb file.

    Raises:
        ArchiveReadError: if the file cannot be opened or read
        ArchiveFormatError: if the ar, gzip or tar structure is malformed
        UnsupportedCompressionError: if the control archive is not gzip or plain tar
        ControlNotFoundError: if there is no control archive or control file
        MissingFieldError: if Package, Version or Architecture is missing
        InvalidVersionError: if Version has no upstream part
    """
    path = Path(path)
    try:
        with path.open("rb") as handle:
            digests = digest_stream(handle)
            handle.seek(0)
            control = read_control_bytes(handle, path)
    except OSError as e:
        raise ArchiveReadError(path, f"cannot read archive: {e}") from e

    fields = parse_control(_decode_control(control, path))
    record = record_from_fields(fields, path)
    return record.model_copy(
        update={
            "size": digests.size,
            "md5sum": digests.md5,
            "sha1": digests.sha1,
            "sha256": digests.sha256,
        }
    )

"""Reading and writing Debian control stanzas."""

import gzip
import logging
from collections.abc import Iterable, Iterator
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from debian import deb822

from aptpool.exceptions import InvalidVersionError, MissingFieldError
from aptpool.models import PackageRecord
from aptpool.version import parse_version

logger = logging.getLogger(__name__)

# control field name -> PackageRecord attribute, in Packages index emission order
FIELD_ORDER: dict[str, str] = {
    "Package": "name",
    "Version": "version",
    "Architecture": "architecture",
    "Maintainer": "maintainer",
    "Installed-Size": "installed_size",
    "Pre-Depends": "pre_depends",
    "Depends": "depends",
    "Recommends": "recommends",
    "Suggests": "suggests",
    "Conflicts": "conflicts",
    "Provides": "provides",
    "Replaces": "replaces",
    "Section": "section",
    "Priority": "priority",
    "Homepage": "homepage",
    "Filename": "filename",
    "Size": "size",
    "MD5sum": "md5sum",
    "SHA1": "sha1",
    "SHA256": "sha256",
    "Description": "description",
}
MANDATORY_FIELDS = ("Package", "Version", "Architecture")
INTEGER_FIELDS = frozenset({"Installed-Size", "Size"})


class _ScanState(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"


class _Scan(NamedTuple):
    state: _ScanState
    field: str | None = None
    lines: tuple[str, ...] = ()


_IDLE = _Scan(_ScanState.IDLE)


def _flush(scan: _Scan, fields: dict[str, str]) -> None:
    if scan.state is _ScanState.ACCUMULATING:
        fields[scan.field] = "\n".join(scan.lines).strip()


def _step(scan: _Scan, line: str, fields: dict[str, str]) -> _Scan:
    if line[:1] in (" ", "\t"):
        if scan.state is _ScanState.ACCUMULATING:
            return scan._replace(lines=(*scan.lines, line))
        return scan

    _flush(scan, fields)
    name, sep, value = line.partition(":")
    if not sep or not name:
        return _IDLE
    return _Scan(_ScanState.ACCUMULATING, name, (value.strip(),))


def parse_control(text: str) -> dict[str, str]:
    """Parse a single control stanza into a field mapping.

    Continuation lines (starting with a space or tab) are appended verbatim to
    the current field, separated by newlines; the accumulated value is only
    stripped at its edges. Lines that are neither fields nor continuations end
    the current field and are otherwise ignored.
    """
    fields: dict[str, str] = {}
    scan = _IDLE
    for line in text.splitlines():
        scan = _step(scan, line, fields)
    _flush(scan, fields)
    return fields


def iter_stanzas(text: str) -> Iterator[dict[str, str]]:
    """Split multi-stanza text on blank lines and parse each stanza."""
    stanza_lines: list[str] = []
    for line in text.splitlines():
        if line.strip() == "":
            if stanza_lines:
                yield parse_control("\n".join(stanza_lines))
                stanza_lines = []
        else:
            stanza_lines.append(line)
    if stanza_lines:
        yield parse_control("\n".join(stanza_lines))


def record_from_fields(fields: dict[str, str], path: Path | None = None) -> PackageRecord:
    """Build a PackageRecord from parsed control fields.

    Unknown fields are ignored, as are integer fields that do not parse.

    Raises:
        MissingFieldError: if Package, Version or Architecture is missing or empty
        InvalidVersionError: if Version has no upstream part
    """
    for field in MANDATORY_FIELDS:
        if not fields.get(field):
            raise MissingFieldError(path, field)
    try:
        parse_version(fields["Version"])
    except ValueError as e:
        raise InvalidVersionError(path, fields["Version"], "no upstream version") from e

    values: dict[str, str | int] = {}
    for field, attr in FIELD_ORDER.items():
        value = fields.get(field)
        if not value:
            continue
        if field in INTEGER_FIELDS:
            try:
                values[attr] = int(value, 10)
            except ValueError:
                logger.debug(f"Ignoring unparseable {field} value {value!r} in {path or 'stanza'}")
            continue
        values[attr] = value
    return PackageRecord(**values)


def render_stanza(record: PackageRecord) -> str:
    """Render a record as a Packages index stanza, fields in fixed order, empty fields omitted."""
    paragraph = deb822.Packages()
    for field, attr in FIELD_ORDER.items():
        value = getattr(record, attr)
        if field == "Installed-Size" and not value:
            continue
        if value is None or value == "":
            continue
        paragraph[field] = str(value)
    return paragraph.dump()


def render_packages(records: Iterable[PackageRecord]) -> str:
    """Render a complete Packages index, one blank line after each stanza."""
    return "".join(f"{render_stanza(record)}\n" for record in records)


def read_packages_index(local_path: Path) -> list[PackageRecord]:
    """Read a Packages or Packages.gz file back into records."""

    def _open_text_stream():
        if local_path.suffix == ".gz":
            return gzip.open(local_path, "rt", encoding="utf-8", errors="ignore")
        return local_path.open("rt", encoding="utf-8", errors="ignore")

    with _open_text_stream() as handle:
        return [
            record_from_fields(dict(paragraph), local_path)
            for paragraph in deb822.Packages.iter_paragraphs(handle, use_apt_pkg=False)
        ]

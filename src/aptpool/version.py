"""Debian package version parsing and ordering.

A version string has the form ``[epoch:]upstream[-revision]``. Versions are
ordered by epoch (as an integer), then upstream, then revision, where the
latter two are compared by alternately consuming a run of non-digits and a
run of digits from each string:

- non-digit runs compare character by character using :func:`char_order`,
  so ``~`` sorts before anything (including the end of the run), letters sort
  before every other character;
- digit runs compare numerically, an empty run counting as zero.
"""

import re
from collections.abc import Iterable, Iterator
from functools import cmp_to_key
from itertools import zip_longest
from typing import NamedTuple

_EPOCH_RE = re.compile(r"([0-9]+):")
_NON_DIGITS_RE = re.compile(r"[^0-9]*")
_DIGITS_RE = re.compile(r"[0-9]*")

# (non-digit run key, digit run value) of an exhausted string
type _Part = tuple[tuple[int, ...], int]
_END_OF_RUN = 0
_EXHAUSTED: _Part = ((_END_OF_RUN,), 0)


class Version(NamedTuple):
    """A parsed Debian version."""

    epoch: int
    upstream: str
    revision: str = ""

    def __str__(self) -> str:
        text = self.upstream
        if self.epoch:
            text = f"{self.epoch}:{text}"
        if self.revision:
            text = f"{text}-{self.revision}"
        return text


def parse_version(version: str) -> Version:
    """Split a version string into epoch, upstream version and revision.

    The epoch is only recognised when everything before the first colon is
    digits; the revision is whatever follows the last hyphen.

    Raises:
        ValueError: if the upstream part is empty
    """
    epoch = 0
    rest = version
    if match := _EPOCH_RE.match(version):
        epoch = int(match.group(1))
        rest = version[match.end() :]

    upstream, sep, revision = rest.rpartition("-")
    if not sep:
        upstream, revision = rest, ""

    if not upstream:
        raise ValueError(f"Invalid version {version!r}: empty upstream version")
    return Version(epoch, upstream, revision)


def char_order(char: str) -> int:
    """Sort weight of a character inside a non-digit run."""
    if char == "~":
        return -1
    if ("a" <= char <= "z") or ("A" <= char <= "Z"):
        return ord(char)
    return ord(char) + 256


def _run_key(run: str) -> tuple[int, ...]:
    # the trailing end marker makes a shorter run sort after one continuing with "~"
    return (*map(char_order, run), _END_OF_RUN)


def _iter_parts(text: str) -> Iterator[_Part]:
    pos = 0
    while pos < len(text):
        non_digits = _NON_DIGITS_RE.match(text, pos).group()
        pos += len(non_digits)
        digits = _DIGITS_RE.match(text, pos).group()
        pos += len(digits)
        yield _run_key(non_digits), int(digits or "0")


def compare_part(a: str, b: str) -> int:
    """Compare an upstream version or revision string. Returns -1, 0 or 1."""
    for part_a, part_b in zip_longest(_iter_parts(a), _iter_parts(b), fillvalue=_EXHAUSTED):
        if part_a != part_b:
            return -1 if part_a < part_b else 1
    return 0


def compare_versions(a: str | Version, b: str | Version) -> int:
    """Compare two Debian versions. Returns -1 if a < b, 0 if equal, 1 if a > b."""
    va = a if isinstance(a, Version) else parse_version(a)
    vb = b if isinstance(b, Version) else parse_version(b)

    if va.epoch != vb.epoch:
        return -1 if va.epoch < vb.epoch else 1
    if cmp := compare_part(va.upstream, vb.upstream):
        return cmp
    return compare_part(va.revision, vb.revision)


version_key = cmp_to_key(compare_versions)


def sort_versions_descending(versions: Iterable[str]) -> list[str]:
    """Return the versions sorted newest first."""
    return sorted(versions, key=version_key, reverse=True)

"""Tests for aptpool.deb."""

import gzip
import hashlib
import io
from pathlib import Path

import pytest
from conftest import build_ar, build_deb, build_tar, control_text

from aptpool.deb import extract, iter_ar_members
from aptpool.exceptions import (
    ArchiveFormatError,
    ArchiveReadError,
    ControlNotFoundError,
    MissingFieldError,
    UnsupportedCompressionError,
)


def write(tmp_path: Path, data: bytes, name: str = "pkg.deb") -> Path:
    path = tmp_path / name
    path.write_bytes(data)
    return path


class TestExtract:
    def test_metadata_and_digests(self, tmp_path: Path) -> None:
        control = control_text("myapp", "1.0.0-1", "amd64", depends="libc6", installed_size="12")
        path = write(tmp_path, build_deb(control))
        data = path.read_bytes()

        record = extract(path)

        assert record.name == "myapp"
        assert record.version == "1.0.0-1"
        assert record.architecture == "amd64"
        assert record.depends == "libc6"
        assert record.installed_size == 12
        assert record.description == "A test package"
        assert record.size == len(data)
        assert record.md5sum == hashlib.md5(data).hexdigest()
        assert record.sha1 == hashlib.sha1(data).hexdigest()
        assert record.sha256 == hashlib.sha256(data).hexdigest()
        assert record.filename is None

    def test_uncompressed_control_tar(self, tmp_path: Path) -> None:
        path = write(tmp_path, build_deb(control_text("plain", "1", "all"), compression=""))
        assert extract(path).name == "plain"

    def test_control_without_dot_prefix(self, tmp_path: Path) -> None:
        path = write(tmp_path, build_deb(control_text("bare", "1", "all"), control_name="control"))
        assert extract(path).name == "bare"

    @pytest.mark.parametrize(("suffix", "format_name"), [(".zst", "zstd"), (".xz", "xz"), (".bz2", "bzip2")])
    def test_unsupported_compression(self, tmp_path: Path, suffix: str, format_name: str) -> None:
        path = write(tmp_path, build_deb(control_text("x", "1", "all"), compression=suffix))
        with pytest.raises(UnsupportedCompressionError) as exc_info:
            extract(path)
        assert exc_info.value.suffix == suffix
        assert exc_info.value.format_name == format_name
        assert exc_info.value.path == path
        assert not isinstance(exc_info.value, ArchiveReadError)

    def test_unknown_compression_suffix(self, tmp_path: Path) -> None:
        path = write(tmp_path, build_deb(control_text("x", "1", "all"), compression=".foo"))
        with pytest.raises(UnsupportedCompressionError) as exc_info:
            extract(path)
        assert exc_info.value.format_name is None

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ArchiveReadError) as exc_info:
            extract(tmp_path / "missing.deb")
        assert exc_info.value.path == tmp_path / "missing.deb"
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    def test_not_an_ar_archive(self, tmp_path: Path) -> None:
        path = write(tmp_path, b"not a real deb")
        with pytest.raises(ArchiveFormatError):
            extract(path)

    def test_no_control_member(self, tmp_path: Path) -> None:
        path = write(tmp_path, build_ar([("debian-binary", b"2.0\n"), ("data.tar.gz", b"")]))
        with pytest.raises(ControlNotFoundError):
            extract(path)

    def test_no_control_file_in_tar(self, tmp_path: Path) -> None:
        payload = gzip.compress(build_tar({"./md5sums": ""}))
        path = write(tmp_path, build_ar([("debian-binary", b"2.0\n"), ("control.tar.gz", payload)]))
        with pytest.raises(ControlNotFoundError):
            extract(path)

    def test_corrupt_gzip(self, tmp_path: Path) -> None:
        path = write(tmp_path, build_ar([("control.tar.gz", b"definitely not gzip")]))
        with pytest.raises(ArchiveFormatError) as exc_info:
            extract(path)
        assert not isinstance(exc_info.value, UnsupportedCompressionError)

    def test_truncated_member(self, tmp_path: Path) -> None:
        data = build_deb(control_text("x", "1", "all"))
        path = write(tmp_path, data[:100])
        with pytest.raises(ArchiveFormatError):
            extract(path)

    def test_missing_mandatory_field(self, tmp_path: Path) -> None:
        path = write(tmp_path, build_deb("Package: x\nVersion: 1\n"))
        with pytest.raises(MissingFieldError) as exc_info:
            extract(path)
        assert exc_info.value.field == "Architecture"
        assert exc_info.value.path == path

    def test_latin1_control_file(self, tmp_path: Path) -> None:
        control = b"Package: x\nVersion: 1\nArchitecture: all\nMaintainer: J\xf6rg <j@example.com>\n"
        record = extract(write(tmp_path, build_deb(control)))
        assert record.maintainer == "J\u00f6rg <j@example.com>"

    def test_utf8_control_file(self, tmp_path: Path) -> None:
        control = control_text("x", "1", "all", maintainer="J\u00f6rg <j@example.com>")
        record = extract(write(tmp_path, build_deb(control)))
        assert record.maintainer == "J\u00f6rg <j@example.com>"


class TestIterArMembers:
    def test_members_and_padding(self) -> None:
        data = build_ar([("odd", b"abc"), ("even/", b"abcd"), ("last", b"z")])
        members = list(iter_ar_members(io.BytesIO(data)))
        assert [(m.name, m.size) for m in members] == [("odd", 3), ("even", 4), ("last", 1)]

    def test_bsd_long_name(self) -> None:
        name = b"control.tar.gz\0\0"
        payload = name + b"DATA"
        header = f"{'#1/16':<16}{0:<12}{0:<6}{0:<6}{'100644':<8}{len(payload):<10}".encode() + b"`\n"
        data = b"!<arch>\n" + header + payload
        handle = io.BytesIO(data)
        members = list(iter_ar_members(handle))
        assert members[0].name == "control.tar.gz"
        assert members[0].size == 4
        handle.seek(members[0].offset)
        assert handle.read(members[0].size) == b"DATA"

    def test_bad_header_terminator(self) -> None:
        data = b"!<arch>\n" + b"x" * 60
        with pytest.raises(ArchiveFormatError):
            list(iter_ar_members(io.BytesIO(data)))

"""Shared fixtures: real .deb archives built in memory."""

import gzip
import io
import tarfile
from pathlib import Path

import pytest

from aptpool.models import RepositoryConfig
from aptpool.repository import Repository


def build_ar(members: list[tuple[str, bytes]]) -> bytes:
    """Build a GNU-style ar archive from (name, data) pairs."""
    out = bytearray(b"!<arch>\n")
    for name, data in members:
        header = f"{name:<16}{0:<12}{0:<6}{0:<6}{'100644':<8}{len(data):<10}".encode("ascii") + b"`\n"
        out += header + data
        if len(data) % 2:
            out += b"\n"
    return bytes(out)


def build_tar(files: dict[str, str | bytes]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name, text in files.items():
            data = text if isinstance(text, bytes) else text.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def control_text(name: str, version: str, architecture: str, **extra: str) -> str:
    fields = {"Package": name, "Version": version, "Architecture": architecture}
    fields.update({key.replace("_", "-").title(): value for key, value in extra.items()})
    fields.setdefault("Maintainer", "Test <test@example.com>")
    fields.setdefault("Description", "A test package")
    return "".join(f"{key}: {value}\n" for key, value in fields.items())


def build_deb(control: str | bytes, compression: str = ".gz", control_name: str = "./control") -> bytes:
    """Build .deb bytes with the given control file text."""
    tar_bytes = build_tar({control_name: control})
    # only gzip is compressed for real; other suffixes are rejected before decompression
    payload = gzip.compress(tar_bytes) if compression == ".gz" else tar_bytes
    return build_ar(
        [
            ("debian-binary", b"2.0\n"),
            (f"control.tar{compression}", payload),
            ("data.tar.gz", gzip.compress(build_tar({"./usr/share/doc/x": "x"}))),
        ]
    )


@pytest.fixture
def make_deb(tmp_path: Path):
    """Factory writing a .deb for (name, version, architecture) and returning its path."""

    def _make_deb(
        name: str,
        version: str,
        architecture: str = "amd64",
        directory: Path | None = None,
        filename: str | None = None,
        **extra: str,
    ) -> Path:
        directory = directory or tmp_path / "incoming"
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / (filename or f"{name}_{version}_{architecture}.deb")
        path.write_bytes(build_deb(control_text(name, version, architecture, **extra)))
        return path

    return _make_deb


@pytest.fixture
def repo_config() -> RepositoryConfig:
    return RepositoryConfig(
        origin="Test",
        label="Test",
        description="Test Repository",
        architectures=["amd64", "arm64"],
        components=["main"],
        distributions=["stable", "testing"],
    )


@pytest.fixture
def repo(tmp_path: Path, repo_config: RepositoryConfig) -> Repository:
    repository = Repository(tmp_path / "repo", repo_config)
    repository.init()
    return repository

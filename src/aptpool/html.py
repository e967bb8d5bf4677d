"""Browsable index.html listings for a repository tree."""

import logging
from pathlib import Path
from typing import NamedTuple

from jinja2 import Environment, PackageLoader, select_autoescape
from pydantic import ByteSize

from aptpool.constants import HTML_INDEX_FILE
from aptpool.utils import raise_walk_error

logger = logging.getLogger(__name__)

env = Environment(
    loader=PackageLoader("aptpool", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


class FileEntry(NamedTuple):
    name: str
    size: str


def _display_path(root: Path, directory: Path) -> str:
    rel_path = directory.relative_to(root).as_posix()
    return "/" if rel_path == "." else f"/{rel_path}/"


def render_directory_index(root: Path, directory: Path) -> str:
    """Render the listing of one directory: subdirectories first, then files, each sorted by name."""
    directories: list[str] = []
    files: list[FileEntry] = []
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        if entry.name.startswith(".") or entry.name == HTML_INDEX_FILE:
            continue
        if entry.is_dir():
            directories.append(entry.name)
        else:
            files.append(FileEntry(entry.name, ByteSize(entry.stat().st_size).human_readable()))

    return env.get_template(HTML_INDEX_FILE).render(
        path=_display_path(root, directory),
        show_parent=directory != root,
        directories=directories,
        files=files,
    )


def generate_html_indexes(root: Path) -> list[Path]:
    """Write an index.html into every non-hidden directory below root (root included)."""
    written: list[Path] = []
    for dirpath, dirnames, _filenames in root.walk(on_error=raise_walk_error):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        index_path = dirpath / HTML_INDEX_FILE
        index_path.write_text(render_directory_index(root, dirpath), encoding="utf-8")
        written.append(index_path)
    logger.info(f"Wrote {len(written)} HTML index page(s) under {root}")
    return written

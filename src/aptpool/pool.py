"""Pool layout: where package archives live inside the repository."""

import logging
from collections.abc import Iterator
from pathlib import Path, PurePosixPath

from aptpool.constants import DEB_SUFFIX, DEFAULT_COMPONENT, POOL_DIR
from aptpool.models import PackageRecord
from aptpool.utils import raise_walk_error
from aptpool.version import parse_version

logger = logging.getLogger(__name__)


def pool_prefix(name: str) -> str:
    """Return the pool subdirectory prefix for a package name.

    Examples:
        >>> pool_prefix("myapp")
        'm'
        >>> pool_prefix("libfoo")
        'libf'
        >>> pool_prefix("lib")
        'l'
    """
    if name.startswith("lib") and len(name) > 3:
        return name[:4]
    return name[:1]


def pool_path(name: str, filename: str, component: str = DEFAULT_COMPONENT) -> PurePosixPath:
    """Return the repository-relative pool path for a package file.

    Examples:
        >>> pool_path("libfoo", "libfoo_1.0_amd64.deb")
        PurePosixPath('pool/main/libf/libfoo/libfoo_1.0_amd64.deb')
    """
    return PurePosixPath(POOL_DIR, component, pool_prefix(name), name, filename)


def deb_filename(record: PackageRecord) -> str:
    """Return the canonical ``<name>_<version>_<architecture>.deb`` filename.

    The epoch is not part of the filename, as in the Debian archive.
    """
    version = parse_version(record.version)
    bare_version = str(version._replace(epoch=0))
    return f"{record.name}_{bare_version}_{record.architecture}{DEB_SUFFIX}"


def iter_pool_archives(pool_dir: Path) -> Iterator[Path]:
    """Lazily yield every package archive below pool_dir, in sorted order.

    A missing pool directory yields nothing; any other filesystem error propagates.
    """
    if not pool_dir.is_dir():
        logger.debug(f"Pool directory {pool_dir} does not exist")
        return

    for dirpath, dirnames, filenames in pool_dir.walk(on_error=raise_walk_error):
        dirnames.sort()
        for filename in sorted(filenames):
            if filename.endswith(DEB_SUFFIX):
                yield dirpath / filename

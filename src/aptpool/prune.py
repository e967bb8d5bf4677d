"""Removal of old package versions from the pool."""

import logging
from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path

from aptpool.constants import DEFAULT_KEEP_VERSIONS
from aptpool.deb import extract
from aptpool.models import PoolEntry, PruneResult
from aptpool.pool import iter_pool_archives
from aptpool.utils import raise_walk_error
from aptpool.version import version_key

logger = logging.getLogger(__name__)


def group_pool_entries(pool_dir: Path) -> dict[tuple[str, str], list[PoolEntry]]:
    """Extract every archive below pool_dir and group them by (name, architecture).

    Any extraction failure aborts the walk; no partial grouping is returned.
    """
    groups: dict[tuple[str, str], list[PoolEntry]] = defaultdict(list)
    for path in iter_pool_archives(pool_dir):
        record = extract(path)
        groups[(record.name, record.architecture)].append(PoolEntry(path=path, record=record))
    return groups


def remove_empty_dirs(root: Path) -> list[Path]:
    """Remove empty directories below root, deepest first. root itself is kept."""
    removed: list[Path] = []
    for dirpath, _dirnames, _filenames in root.walk(top_down=False, on_error=raise_walk_error):
        if dirpath == root or any(dirpath.iterdir()):
            continue
        dirpath.rmdir()
        removed.append(dirpath)
    return removed


def plan_prune(groups: dict[tuple[str, str], list[PoolEntry]], keep: int, result: PruneResult) -> None:
    """Split each group into its newest ``keep`` entries and the rest, appending both to result."""
    for key in sorted(groups):
        entries = sorted(groups[key], key=lambda e: version_key(e.record.version), reverse=True)
        result.kept += [entry.path for entry in entries[:keep]]
        result.deleted += [entry.path for entry in entries[keep:]]


def prune_pools(
    pool_dirs: Iterable[Path], keep: int = DEFAULT_KEEP_VERSIONS, dry_run: bool = False
) -> PruneResult:
    """Keep the newest ``keep`` versions of every (name, architecture) in each pool directory.

    Every directory is scanned before anything is deleted, so an unreadable
    archive in any of them aborts the whole run with the pool untouched.

    Args:
        pool_dirs: Pool component directories (e.g. ``pool/main``), each pruned on its own
        keep: Versions to keep per package; non-positive values mean the default of 5
        dry_run: Report what would be deleted without touching the filesystem

    Returns:
        Kept and deleted archive paths, identical whether or not dry_run is set
    """
    if keep < 1:
        keep = DEFAULT_KEEP_VERSIONS

    pool_dirs = list(pool_dirs)
    scanned = [group_pool_entries(pool_dir) for pool_dir in pool_dirs]

    result = PruneResult(dry_run=dry_run)
    for groups in scanned:
        plan_prune(groups, keep, result)

    if dry_run:
        logger.info(f"Dry run: would delete {len(result.deleted)} and keep {len(result.kept)} archive(s)")
        return result

    for path in result.deleted:
        logger.debug(f"Deleting {path}")
        path.unlink()
    for pool_dir in pool_dirs:
        if not pool_dir.is_dir():
            continue
        for path in remove_empty_dirs(pool_dir):
            logger.debug(f"Removed empty directory {path}")

    logger.info(f"Deleted {len(result.deleted)} and kept {len(result.kept)} archive(s)")
    return result


def prune_pool(pool_dir: Path, keep: int = DEFAULT_KEEP_VERSIONS, dry_run: bool = False) -> PruneResult:
    """Prune a single pool directory. See :func:`prune_pools`."""
    return prune_pools([pool_dir], keep, dry_run)

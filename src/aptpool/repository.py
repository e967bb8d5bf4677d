"""Local APT repository: pool placement, Packages indexes and Release manifests."""

import gzip
import logging
import lzma
import shutil
from datetime import UTC, datetime
from pathlib import Path

from debian import deb822

from aptpool.constants import (
    ARCH_ALL,
    DEFAULT_COMPONENT,
    DISTS_DIR,
    INRELEASE_FILE,
    PACKAGES_INDEX,
    POOL_DIR,
    RELEASE_DATE_FORMAT,
    RELEASE_FILE,
    RELEASE_GPG_FILE,
    RELEASE_SIZE_WIDTH,
)
from aptpool.control import read_packages_index, render_packages
from aptpool.deb import extract
from aptpool.exceptions import AptPoolError
from aptpool.models import PackageRecord, PoolEntry, PruneResult, ReleaseFile, RepositoryConfig
from aptpool.pool import deb_filename, iter_pool_archives, pool_path
from aptpool.prune import prune_pools
from aptpool.utils import file_digests, raise_walk_error, try_parse_date
from aptpool.version import version_key

logger = logging.getLogger(__name__)

# Release checksum blocks: (block header, FileDigests attribute)
CHECKSUM_BLOCKS = (
    ("MD5Sum", "md5"),
    ("SHA1", "sha1"),
    ("SHA256", "sha256"),
)
SIGNATURE_FILES = frozenset({RELEASE_FILE, RELEASE_GPG_FILE, INRELEASE_FILE})


def sort_records(records: list[PackageRecord]) -> list[PackageRecord]:
    """Sort records by name ascending, then version descending."""
    by_version = sorted(records, key=lambda r: version_key(r.version), reverse=True)
    return sorted(by_version, key=lambda r: r.name)


class Repository:
    """An APT repository rooted at a local directory."""

    def __init__(self, root: Path | str, config: RepositoryConfig | None = None):
        """Initialize the repository.

        Args:
            root: Repository root directory (containing ``dists/`` and ``pool/``)
            config: Layout and Release header settings. Defaults to RepositoryConfig()
        """
        self.root = Path(root)
        self.config = config or RepositoryConfig()

    @property
    def pool_dir(self) -> Path:
        return self.root / POOL_DIR

    def dist_dir(self, dist: str) -> Path:
        return self.root / DISTS_DIR / dist

    def index_dir(self, dist: str, component: str, architecture: str) -> Path:
        return self.dist_dir(dist) / component / f"binary-{architecture}"

    def init(self) -> None:
        """Create the directory structure, with an empty Packages file per index directory.

        Existing files are left untouched, so this can be re-run safely.
        """
        for dist in self.config.distributions:
            for component in self.config.components:
                for arch in self.config.architectures:
                    index_dir = self.index_dir(dist, component, arch)
                    index_dir.mkdir(parents=True, exist_ok=True)
                    packages_path = index_dir / PACKAGES_INDEX
                    if not packages_path.exists():
                        packages_path.write_bytes(b"")

        for component in self.config.components:
            (self.pool_dir / component).mkdir(parents=True, exist_ok=True)

        logger.info(f"Initialized repository at {self.root}")

    def add_package(self, deb_path: Path | str, component: str = DEFAULT_COMPONENT) -> PoolEntry:
        """Copy a .deb into the pool.

        The destination is derived from the package name, version and
        architecture; adding the same triple again replaces the pooled file.
        The epoch is not part of the pool filename, so versions differing only
        in epoch (``1.0`` and ``1:1.0``) share a file and replace each other;
        a warning is logged when that happens.

        Returns:
            The placed pool entry, its record carrying the repository-relative filename
        """
        deb_path = Path(deb_path)
        record = extract(deb_path)

        rel_path = pool_path(record.name, deb_filename(record), component)
        dest = self.root / rel_path
        entry = PoolEntry(path=dest, record=record.model_copy(update={"filename": rel_path.as_posix()}))
        dest.parent.mkdir(parents=True, exist_ok=True)
        if dest.exists():
            if dest.samefile(deb_path):
                logger.info(f"{rel_path} is already in the pool")
                return entry
            self._warn_on_replace(dest, record)
        shutil.copyfile(deb_path, dest)

        logger.info(f"Added {record.name} {record.version} ({record.architecture}) as {rel_path}")
        return entry

    def _warn_on_replace(self, dest: Path, record: PackageRecord) -> None:
        try:
            existing = extract(dest)
        except AptPoolError as e:
            logger.warning(f"Replacing unreadable pool file {dest}: {e}")
            return
        if existing.version != record.version:
            logger.warning(f"{record.name} {record.version} replaces {existing.version} at {dest}")
        else:
            logger.info(f"Replacing existing pool file {dest}")

    def scan_pool(self, component: str, architecture: str) -> list[PackageRecord]:
        """Extract every archive in a component's pool that applies to the architecture.

        Any extraction failure aborts the scan.

        Returns:
            Records sorted by name, newest version first, with Filename set
        """
        records: list[PackageRecord] = []
        for path in iter_pool_archives(self.pool_dir / component):
            record = extract(path)
            if record.architecture not in (architecture, ARCH_ALL):
                continue
            filename = path.relative_to(self.root).as_posix()
            records.append(record.model_copy(update={"filename": filename}))
        return sort_records(records)

    def _write_index(self, index_dir: Path, content: bytes) -> list[Path]:
        index_dir.mkdir(parents=True, exist_ok=True)
        packages_path = index_dir / PACKAGES_INDEX
        packages_path.write_bytes(content)

        gz_path = packages_path.with_name(f"{PACKAGES_INDEX}.gz")
        gz_path.write_bytes(gzip.compress(content, compresslevel=9, mtime=0))
        written = [packages_path, gz_path]

        xz_path = packages_path.with_name(f"{PACKAGES_INDEX}.xz")
        try:
            xz_path.write_bytes(lzma.compress(content))
            written.append(xz_path)
        except (lzma.LZMAError, OSError) as e:
            logger.warning(f"Could not create {xz_path}: {e}")
            # a variant left over from an earlier build would no longer match Packages
            xz_path.unlink(missing_ok=True)
        return written

    def build_index(self, dist: str) -> list[Path]:
        """Regenerate the Packages indexes of every component and architecture of a distribution.

        Returns:
            Paths of the index files written
        """
        written: list[Path] = []
        for component in self.config.components:
            for arch in self.config.architectures:
                records = self.scan_pool(component, arch)
                content = render_packages(records).encode("utf-8")
                written += self._write_index(self.index_dir(dist, component, arch), content)
                logger.info(f"Wrote {len(records)} package(s) to {dist}/{component}/binary-{arch}")
        return written

    def read_index(self, dist: str, component: str, architecture: str) -> list[PackageRecord]:
        """Read back the Packages index of one component and architecture."""
        packages_path = self.index_dir(dist, component, architecture) / PACKAGES_INDEX
        if not packages_path.exists():
            return []
        return read_packages_index(packages_path)

    def collect_release_files(self, dist: str) -> list[ReleaseFile]:
        """Digest every index file below a distribution directory, sorted by relative path."""
        dist_dir = self.dist_dir(dist)
        files: list[ReleaseFile] = []
        for dirpath, dirnames, filenames in dist_dir.walk(on_error=raise_walk_error):
            dirnames.sort()
            for name in sorted(filenames):
                if name in SIGNATURE_FILES or not name.startswith(PACKAGES_INDEX):
                    continue
                path = dirpath / name
                digests = file_digests(path)
                files.append(ReleaseFile(path=path.relative_to(dist_dir).as_posix(), **digests.model_dump()))
        return sorted(files, key=lambda f: f.path)

    def render_release(self, dist: str, files: list[ReleaseFile], now: datetime | None = None) -> str:
        """Render the Release manifest text for a distribution."""
        now = now or datetime.now(UTC)

        header = deb822.Release()
        header["Origin"] = self.config.origin
        header["Label"] = self.config.label
        header["Suite"] = dist
        header["Codename"] = dist
        header["Architectures"] = " ".join(self.config.architectures)
        header["Components"] = " ".join(self.config.components)
        header["Description"] = self.config.description
        header["Date"] = now.astimezone(UTC).strftime(RELEASE_DATE_FORMAT)

        lines = [header.dump().rstrip("\n")]
        for block, attr in CHECKSUM_BLOCKS:
            lines.append(f"{block}:")
            lines.extend(f" {getattr(f, attr)} {f.size:>{RELEASE_SIZE_WIDTH}} {f.path}" for f in files)
        return "\n".join(lines) + "\n"

    def build_release(self, dist: str, now: datetime | None = None) -> Path:
        """Write the Release manifest of a distribution.

        Returns:
            Path of the Release file
        """
        files = self.collect_release_files(dist)
        release_path = self.dist_dir(dist) / RELEASE_FILE
        release_path.write_text(self.render_release(dist, files, now), encoding="utf-8")
        logger.info(f"Wrote {release_path} listing {len(files)} file(s)")
        return release_path

    def release_date(self, dist: str) -> datetime | None:
        """Date the Release manifest of a distribution was generated, if it exists and parses."""
        release_path = self.dist_dir(dist) / RELEASE_FILE
        if not release_path.exists():
            return None
        release = deb822.Release(release_path.read_text(encoding="utf-8"))
        return try_parse_date(release.get("Date"))

    def verify_release(self, dist: str) -> list[str]:
        """Check the files listed in a Release manifest against the disk.

        Returns:
            A description of each problem found; empty if everything matches
        """
        dist_dir = self.dist_dir(dist)
        release_path = dist_dir / RELEASE_FILE
        if not release_path.exists():
            return [f"{release_path} does not exist"]

        release = deb822.Release(release_path.read_text(encoding="utf-8"))
        problems: list[str] = []
        for entry in release.get("SHA256", []):
            name = entry["name"]
            path = dist_dir / name
            if not path.is_file():
                problems.append(f"{name}: listed in Release but missing")
                continue
            digests = file_digests(path)
            if digests.size != int(entry["size"]):
                problems.append(f"{name}: size {digests.size} != {entry['size']}")
            elif digests.sha256 != entry["sha256"]:
                problems.append(f"{name}: SHA256 mismatch")
        return problems

    def prune(self, keep: int, dry_run: bool = False) -> PruneResult:
        """Remove all but the newest ``keep`` versions of each package, per component.

        All components are scanned before any file is deleted.
        """
        return prune_pools((self.pool_dir / component for component in self.config.components), keep, dry_run)

"""Data models for packages, pool entries and repository configuration."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from aptpool import constants

type OptionalStr = str | None


class PackageRecord(BaseModel):
    """Metadata for one binary package archive."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    version: str = Field(min_length=1)
    architecture: str = Field(min_length=1)
    maintainer: OptionalStr = None
    description: OptionalStr = None
    depends: OptionalStr = None
    pre_depends: OptionalStr = None
    recommends: OptionalStr = None
    suggests: OptionalStr = None
    conflicts: OptionalStr = None
    provides: OptionalStr = None
    replaces: OptionalStr = None
    section: OptionalStr = None
    priority: OptionalStr = None
    homepage: OptionalStr = None
    installed_size: int | None = None
    size: int = 0
    md5sum: OptionalStr = None
    sha1: OptionalStr = None
    sha256: OptionalStr = None
    filename: OptionalStr = None


class FileDigests(BaseModel):
    """Size and content digests of a file."""

    model_config = ConfigDict(frozen=True)

    size: int
    md5: str
    sha1: str
    sha256: str


class ReleaseFile(FileDigests):
    """A file listed in a Release manifest, path relative to the distribution directory."""

    path: str


class PoolEntry(BaseModel):
    """A package archive placed in the pool."""

    model_config = ConfigDict(frozen=True)

    path: Path
    record: PackageRecord


class PruneResult(BaseModel):
    """Outcome of a prune run. Paths are reported even for dry runs."""

    kept: list[Path] = Field(default_factory=list)
    deleted: list[Path] = Field(default_factory=list)
    dry_run: bool = False


class RepositoryConfig(BaseModel):
    """Layout and Release header settings for a repository."""

    origin: str = Field(default=constants.ORIGIN, min_length=1)
    label: str = Field(default=constants.LABEL, min_length=1)
    description: str = constants.DESCRIPTION
    architectures: list[str] = Field(default_factory=lambda: list(constants.ARCHITECTURES), min_length=1)
    components: list[str] = Field(default_factory=lambda: list(constants.COMPONENTS), min_length=1)
    distributions: list[str] = Field(default_factory=lambda: list(constants.DISTRIBUTIONS), min_length=1)

    @field_validator("architectures", "components", "distributions")
    @classmethod
    def _no_blank_entries(cls, value: list[str]) -> list[str]:
        cleaned = [entry.strip() for entry in value]
        if not all(cleaned):
            raise ValueError("entries must not be blank")
        return cleaned

"""Tests for aptpool.prune."""

from pathlib import Path

import pytest

from aptpool.exceptions import ArchiveFormatError
from aptpool.prune import group_pool_entries, prune_pool, prune_pools, remove_empty_dirs


@pytest.fixture
def pool_dir(tmp_path: Path) -> Path:
    return tmp_path / "pool" / "main"


def place(make_deb, pool_dir: Path, name: str, version: str, architecture: str = "amd64") -> Path:
    return make_deb(name, version, architecture, directory=pool_dir / name[0] / name)


class TestPrunePool:
    def test_keeps_newest_versions(self, make_deb, pool_dir: Path) -> None:
        old = place(make_deb, pool_dir, "pkg", "1.0")
        newest = place(make_deb, pool_dir, "pkg", "2.0")
        middle = place(make_deb, pool_dir, "pkg", "1.5")

        result = prune_pool(pool_dir, keep=2)
        assert result.kept == [newest, middle]
        assert result.deleted == [old]
        assert not result.dry_run
        assert not old.exists()
        assert newest.exists() and middle.exists()

    def test_dry_run_leaves_files(self, make_deb, pool_dir: Path) -> None:
        old = place(make_deb, pool_dir, "pkg", "1.0")
        place(make_deb, pool_dir, "pkg", "2.0")
        place(make_deb, pool_dir, "pkg", "1.5")

        result = prune_pool(pool_dir, keep=2, dry_run=True)
        assert result.dry_run
        assert result.deleted == [old]
        assert old.exists()

    def test_dry_run_matches_real_run(self, make_deb, pool_dir: Path) -> None:
        for version in ("1.0", "1.0~rc1", "2:0.1", "1.0+b1"):
            place(make_deb, pool_dir, "tool", version)

        planned = prune_pool(pool_dir, keep=2, dry_run=True)
        actual = prune_pool(pool_dir, keep=2)
        assert (planned.kept, planned.deleted) == (actual.kept, actual.deleted)
        assert [p.name for p in actual.kept] == ["tool_2:0.1_amd64.deb", "tool_1.0+b1_amd64.deb"]

    def test_groups_by_name_and_architecture(self, make_deb, pool_dir: Path) -> None:
        for version in ("1", "2", "3"):
            place(make_deb, pool_dir, "app", version, "amd64")
        arm = place(make_deb, pool_dir, "app", "1", "arm64")
        other = place(make_deb, pool_dir, "other", "1")

        result = prune_pool(pool_dir, keep=1)
        assert arm in result.kept
        assert other in result.kept
        assert [p.name for p in result.deleted] == ["app_2_amd64.deb", "app_1_amd64.deb"]

    def test_fewer_versions_than_keep(self, make_deb, pool_dir: Path) -> None:
        only = place(make_deb, pool_dir, "pkg", "1.0")
        result = prune_pool(pool_dir, keep=3)
        assert result.kept == [only]
        assert result.deleted == []

    @pytest.mark.parametrize("keep", [0, -1])
    def test_non_positive_keep_means_five(self, make_deb, pool_dir: Path, keep: int) -> None:
        for minor in range(7):
            place(make_deb, pool_dir, "pkg", f"1.{minor}")
        result = prune_pool(pool_dir, keep=keep, dry_run=True)
        assert len(result.kept) == 5
        assert [p.name for p in result.deleted] == ["pkg_1.1_amd64.deb", "pkg_1.0_amd64.deb"]

    def test_removes_emptied_directories(self, make_deb, pool_dir: Path) -> None:
        place(make_deb, pool_dir, "gone", "1.0")
        # a newer upload of the same package under a different pool directory
        make_deb("gone", "2.0", directory=pool_dir / "g" / "gone-new")

        prune_pool(pool_dir, keep=1)
        assert not (pool_dir / "g" / "gone").exists()
        assert (pool_dir / "g" / "gone-new").is_dir()
        assert pool_dir.is_dir()

    def test_missing_pool_dir(self, pool_dir: Path) -> None:
        result = prune_pool(pool_dir, keep=2)
        assert result.kept == []
        assert result.deleted == []

    def test_bad_archive_aborts_without_deleting(self, make_deb, pool_dir: Path) -> None:
        old = place(make_deb, pool_dir, "pkg", "1.0")
        place(make_deb, pool_dir, "pkg", "2.0")
        broken = pool_dir / "z" / "zzz" / "zzz_1_amd64.deb"
        broken.parent.mkdir(parents=True)
        broken.write_bytes(b"not an archive")

        with pytest.raises(ArchiveFormatError):
            prune_pool(pool_dir, keep=1)
        assert old.exists()


    def test_all_directories_scanned_before_deleting(self, make_deb, tmp_path: Path) -> None:
        main = tmp_path / "pool" / "main"
        zeta = tmp_path / "pool" / "zeta"
        old = place(make_deb, main, "pkg", "1.0")
        place(make_deb, main, "pkg", "2.0")
        broken = zeta / "b" / "broken" / "broken_1_amd64.deb"
        broken.parent.mkdir(parents=True)
        broken.write_bytes(b"not an archive")

        with pytest.raises(ArchiveFormatError):
            prune_pools([main, zeta], keep=1)
        assert old.exists()

    def test_directories_pruned_independently(self, make_deb, tmp_path: Path) -> None:
        main = tmp_path / "pool" / "main"
        extra = tmp_path / "pool" / "extra"
        place(make_deb, main, "pkg", "1.0")
        place(make_deb, extra, "pkg", "2.0")

        result = prune_pools([main, extra], keep=1)
        assert result.deleted == []
        assert len(result.kept) == 2

def test_group_pool_entries(make_deb, pool_dir: Path) -> None:
    place(make_deb, pool_dir, "a", "1")
    place(make_deb, pool_dir, "a", "2")
    place(make_deb, pool_dir, "a", "1", "all")
    groups = group_pool_entries(pool_dir)
    assert sorted(groups) == [("a", "all"), ("a", "amd64")]
    assert sorted(e.record.version for e in groups[("a", "amd64")]) == ["1", "2"]


def test_remove_empty_dirs(tmp_path: Path) -> None:
    (tmp_path / "x" / "y" / "z").mkdir(parents=True)
    (tmp_path / "keep").mkdir()
    (tmp_path / "keep" / "file").write_text("data")

    removed = remove_empty_dirs(tmp_path)
    assert removed == [tmp_path / "x" / "y" / "z", tmp_path / "x" / "y", tmp_path / "x"]
    assert (tmp_path / "keep" / "file").exists()
    assert tmp_path.is_dir()

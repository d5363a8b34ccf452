"""Fetcher 测试 — 缓存命中 / 强制下载 / 解压 / configure 定位"""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from pkgbatch.core.config import Settings
from pkgbatch.core.exceptions import (
    ArchiveError, DownloadError, EntryPointError, ValidationError,
)
from pkgbatch.core.models import SourceRecord
from pkgbatch.services.cache import ArchiveCache
from pkgbatch.services.fetcher import Fetcher, find_entry_points

URL = "http://example.com/foo-1.0.tar.gz"


@pytest.fixture()
def cache(tmp_path: Path) -> ArchiveCache:
    c = ArchiveCache(tmp_path / "cache")
    c.init()
    return c


@pytest.fixture()
def fetcher(cache, fake_executor) -> Fetcher:
    return Fetcher(cache, Settings(), executor=fake_executor)


class TestFindEntryPoints:
    def test_single(self) -> None:
        names = ["foo-1.0", "foo-1.0/configure", "foo-1.0/Makefile.in"]
        assert find_entry_points(names) == ["foo-1.0"]

    def test_exact_name_only(self) -> None:
        names = ["foo/configure.ac", "foo/configure.sh", "foo/not-configure"]
        assert find_entry_points(names) == []

    def test_multiple(self) -> None:
        names = ["foo/configure", "foo/libltdl/configure"]
        assert find_entry_points(names) == ["foo", "foo/libltdl"]

    def test_top_level_configure(self) -> None:
        assert find_entry_points(["configure", "Makefile"]) == ["."]


class TestFetchAndPrepare:
    def test_downloads_when_cache_empty(self, fetcher, fake_executor, make_archive, cache) -> None:
        fake_executor.archives[URL] = make_archive()
        tree = fetcher.fetch_and_prepare(False, SourceRecord(URL, ["--with-bar"]))

        downloads = fake_executor.downloads()
        assert len(downloads) == 1
        assert downloads[0].args == ["wget", "-O", str(cache.root / "foo-1.0.tar.gz"), URL]
        assert tree.entry_point_dir == (cache.root / "foo-1.0").resolve()
        assert tree.entry_point_dir.is_absolute()
        assert (tree.entry_point_dir / "configure").is_file()
        assert tree.configure_args == ["--with-bar"]

    def test_cache_hit_skips_download(self, fetcher, fake_executor, make_archive, cache) -> None:
        shutil.copy(make_archive(), cache.root / "foo-1.0.tar.gz")
        tree = fetcher.fetch_and_prepare(False, SourceRecord(URL))
        assert fake_executor.downloads() == []
        assert tree.entry_point_dir.name == "foo-1.0"

    def test_force_download_removes_cached_file(self, fetcher, fake_executor, make_archive, cache) -> None:
        (cache.root / "foo-1.0.tar.gz").write_bytes(b"stale, not a tarball")
        fake_executor.archives[URL] = make_archive()
        tree = fetcher.fetch_and_prepare(True, SourceRecord(URL))
        assert len(fake_executor.downloads()) == 1
        assert (tree.entry_point_dir / "configure").is_file()

    def test_download_failure(self, fetcher, fake_executor, cache) -> None:
        fake_executor.failures["wget"] = 8
        with pytest.raises(DownloadError, match="foo-1.0.tar.gz") as exc_info:
            fetcher.fetch_and_prepare(False, SourceRecord(URL))
        assert exc_info.value.exit_code == 8
        assert not (cache.root / "foo-1.0.tar.gz").exists()

    def test_reextract_overwrites_previous_tree(self, fetcher, fake_executor, make_archive, cache) -> None:
        fake_executor.archives[URL] = make_archive()
        tree = fetcher.fetch_and_prepare(False, SourceRecord(URL))
        (tree.entry_point_dir / "Makefile").write_text("locally modified")
        again = fetcher.fetch_and_prepare(False, SourceRecord(URL))
        assert again.entry_point_dir == tree.entry_point_dir
        assert (again.entry_point_dir / "Makefile").read_text() == "all:\n\ttrue\n"

    def test_no_configure_is_error(self, fetcher, fake_executor, make_archive) -> None:
        fake_executor.archives[URL] = make_archive(configure_dirs=())
        with pytest.raises(EntryPointError, match="没有找到 configure") as exc_info:
            fetcher.fetch_and_prepare(False, SourceRecord(URL))
        assert exc_info.value.exit_code == 2

    def test_multiple_configure_is_error(self, fetcher, fake_executor, make_archive) -> None:
        fake_executor.archives[URL] = make_archive(configure_dirs=("", "libltdl"))
        with pytest.raises(EntryPointError, match="多个 configure") as exc_info:
            fetcher.fetch_and_prepare(False, SourceRecord(URL))
        assert exc_info.value.candidates == ["foo-1.0", "foo-1.0/libltdl"]

    def test_corrupt_archive(self, fetcher, cache) -> None:
        (cache.root / "foo-1.0.tar.gz").write_bytes(b"not a tarball")
        with pytest.raises(ArchiveError, match="解压失败"):
            fetcher.fetch_and_prepare(False, SourceRecord(URL))

    def test_bad_scheme_rejected_before_download(self, fetcher, fake_executor) -> None:
        with pytest.raises(ValidationError):
            fetcher.fetch_and_prepare(False, SourceRecord("file:///tmp/foo.tar.gz"))
        assert fake_executor.calls == []

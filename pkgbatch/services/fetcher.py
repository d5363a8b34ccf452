"""源码包拉取器

职责:
- 缓存优先，缺失或强制时调用下载命令
- 原地解压到缓存目录（覆盖旧的解压结果）
- 在解压出的成员中定位唯一的 configure 入口
"""

from __future__ import annotations

import logging
import shlex
import tarfile
from pathlib import Path, PurePosixPath

from pkgbatch.core.config import Settings
from pkgbatch.core.exceptions import (
    ArchiveError, DownloadError, EntryPointError, ExecutionError,
)
from pkgbatch.core.models import PackageTree, SourceRecord
from pkgbatch.services.cache import ArchiveCache
from pkgbatch.utils.net import validate_url_scheme
from pkgbatch.utils.shell import CommandExecutor, run_cmd

logger = logging.getLogger(__name__)

ENTRY_POINT = "configure"


def find_entry_points(names: list[str]) -> list[str]:
    """返回所有最后一段恰为 configure 的成员所在目录（相对路径，去重保序）"""
    found: list[str] = []
    for name in names:
        p = PurePosixPath(name)
        if p.name != ENTRY_POINT:
            continue
        parent = str(p.parent)
        if parent not in found:
            found.append(parent)
    return found


class Fetcher:
    """源码包拉取器 - 缓存优先 + 下载命令回退"""

    def __init__(
        self,
        cache: ArchiveCache,
        settings: Settings,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.cache = cache
        self.settings = settings
        self.executor = executor

    def fetch_and_prepare(self, force_download: bool, record: SourceRecord) -> PackageTree:
        """确保归档在缓存中、解压并定位 configure，返回 PackageTree"""
        validate_url_scheme(record.url, context="source url")
        archive = self.ensure_archive(force_download, record.url)
        names = self.extract(archive)
        entry_dir = self.locate_entry_point(archive, names)
        logger.info("源码树就绪: %s", entry_dir)
        return PackageTree(entry_point_dir=entry_dir, configure_args=list(record.configure_args))

    def ensure_archive(self, force_download: bool, url: str) -> Path:
        """缓存命中直接返回；强制下载时先删除旧缓存"""
        dest = self.cache.path_for(url)
        if force_download:
            self.cache.evict(url)

        if self.cache.has(url):
            logger.info("  缓存命中: %s", dest.name)
            return dest

        self.download(url, dest)
        return dest

    def download(self, url: str, dest: Path) -> None:
        """调用下载命令，失败时清理残留文件并抛 DownloadError"""
        cmd = [
            part.format(dest=str(dest), url=url)
            for part in shlex.split(self.settings.download_cmd)
        ]
        logger.info("  下载: %s", url)
        try:
            run_cmd(
                cmd, cwd=str(self.cache.root), label="download",
                capture=False, executor=self.executor,
            )
        except ExecutionError as e:
            dest.unlink(missing_ok=True)
            logger.error("下载失败: %s (%s)", dest.name, e)
            raise DownloadError(f"下载 {dest.name} 失败: {e}", e.returncode) from e
        logger.info("  已保存: %s", dest)

    def extract(self, archive: Path) -> list[str]:
        """原地解压到缓存目录，返回归档成员名列表"""
        logger.info("  解压: %s", archive.name)
        try:
            with tarfile.open(archive) as tf:
                names = tf.getnames()
                tf.extractall(path=str(self.cache.root), filter="data")  # noqa: S202
        except (OSError, tarfile.TarError) as e:
            raise ArchiveError(f"解压失败 {archive.name}: {e}") from e
        return names

    def locate_entry_point(self, archive: Path, names: list[str]) -> Path:
        """要求解压结果中恰好一个 configure"""
        found = find_entry_points(names)
        if not found:
            raise EntryPointError(f"{archive.name} 中没有找到 {ENTRY_POINT}")
        if len(found) > 1:
            raise EntryPointError(
                f"{archive.name} 中有多个 {ENTRY_POINT}: {', '.join(found)}",
                candidates=found,
            )
        return (self.cache.root / found[0]).resolve()

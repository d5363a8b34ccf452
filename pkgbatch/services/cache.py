"""归档缓存管理

缓存策略:
  - 以 URL 路径最后一段为缓存键（文件名）
  - 已存在则不重复下载，除非强制 (-D)
  - 缓存文件从不自动删除；强制下载时先删后下
  - 多个进程共用同一缓存目录时不做同步
"""

from __future__ import annotations

import logging
from pathlib import Path

from pkgbatch.core.exceptions import CacheError
from pkgbatch.utils.net import url_basename

logger = logging.getLogger(__name__)


class ArchiveCache:
    """归档缓存目录"""

    def __init__(self, root: Path) -> None:
        self.root = root

    def init(self) -> None:
        """创建缓存目录（含父目录），失败抛 CacheError"""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"无法创建缓存目录 {self.root}: {e}") from e
        logger.debug("缓存目录就绪: %s", self.root)

    def path_for(self, url: str) -> Path:
        return self.root / url_basename(url)

    def has(self, url: str) -> bool:
        return self.path_for(url).is_file()

    def evict(self, url: str) -> bool:
        """删除指定 URL 的缓存文件，返回是否确实删除了文件"""
        path = self.path_for(url)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise CacheError(f"无法删除缓存文件 {path}: {e}") from e
        logger.info("  已删除缓存: %s", path.name)
        return True

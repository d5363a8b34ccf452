"""批处理编排器

逐行读取输入，每条记录依次经过 Fetcher → PackageDriver。
第一个失败即中止整个运行：异常原样向上传播，后续行不再处理，
也不输出部分成功的汇总。
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from pkgbatch.core.config import RunConfig
from pkgbatch.core.exceptions import ValidationError
from pkgbatch.core.models import SourceRecord
from pkgbatch.services.driver import PackageDriver
from pkgbatch.services.fetcher import Fetcher

logger = logging.getLogger(__name__)


def parse_line(line: str) -> SourceRecord | None:
    """解析一行输入；空行和 # 注释行返回 None"""
    tokens = line.split()
    if not tokens or tokens[0].startswith("#"):
        return None
    return SourceRecord(url=tokens[0], configure_args=tokens[1:])


def _decoded(lines: Iterable[str]) -> Iterator[str]:
    """逐行读取，输入无法解码时转为 ValidationError"""
    it = iter(lines)
    while True:
        try:
            line = next(it)
        except StopIteration:
            return
        except UnicodeDecodeError as e:
            raise ValidationError(f"输入不是有效的 UTF-8 文本: {e}") from e
        yield line


class Orchestrator:
    """顺序执行，首错即停"""

    def __init__(self, run_config: RunConfig, fetcher: Fetcher, driver: PackageDriver) -> None:
        self.run_config = run_config
        self.fetcher = fetcher
        self.driver = driver

    def run(self, lines: Iterable[str]) -> int:
        """处理全部输入行，返回成功处理的记录数"""
        count = 0
        for lineno, line in enumerate(_decoded(lines), start=1):
            record = parse_line(line)
            if record is None:
                continue
            logger.info("[%d] %s %s", lineno, self.run_config.mode.value, record.url)
            tree = self.fetcher.fetch_and_prepare(self.run_config.force_download, record)
            self.driver.do_package(self.run_config.mode, tree)
            count += 1
        return count

"""核心数据模型

SourceRecord: 输入的一行（URL + configure 参数）
PackageTree:  Fetcher 交给 PackageDriver 的结构化结果
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class Mode(str, Enum):
    """运行模式"""

    INSTALL = "install"
    UNINSTALL = "uninstall"


@dataclass
class SourceRecord:
    """单条源码记录，解析后立即消费，不持久化"""

    url: str
    configure_args: list[str] = field(default_factory=list)


@dataclass
class PackageTree:
    """已解压的源码树"""

    entry_point_dir: Path  # configure 所在目录（绝对路径）
    configure_args: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.entry_point_dir.name

"""集中配置管理

Settings:  工具级常量（缓存目录、默认 pkg-config 路径、各步骤命令），
           支持从 YAML 文件加载覆盖。
RunConfig: 单次运行的不可变配置，由 CLI 参数构造一次后显式传递。
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from pkgbatch.core.exceptions import ConfigError
from pkgbatch.core.models import Mode
from pkgbatch.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

CONFIG_ENV = "PKGBATCH_CONFIG"
DEFAULT_CONFIG_FILE = "~/.config/pkgbatch/config.yml"
DEFAULT_PKG_CONFIG_PATH = ":".join((
    "/usr/local/lib/pkgconfig",
    "/usr/local/share/pkgconfig",
    "/usr/lib/pkgconfig",
    "/usr/share/pkgconfig",
))
MARKER_NAME = ".pkgbatch-installed"


@dataclass
class Settings:
    """工具全局配置"""

    # 目录
    cache_dir: str = "~/.cache/pkgbatch"

    # 构建环境
    default_pkg_config_path: str = DEFAULT_PKG_CONFIG_PATH
    marker_name: str = MARKER_NAME

    # 各步骤命令，{dest} / {url} 为下载命令占位符
    download_cmd: str = "wget -O {dest} {url}"
    configure_cmd: str = "./configure"
    build_cmd: str = "make"
    install_cmd: str = "make install"
    uninstall_cmd: str = "make uninstall"
    elevate_cmd: str = "sudo"

    # 放不到字段里的配置项
    extra: dict = field(default_factory=dict)

    @property
    def cache_path(self) -> Path:
        """缓存目录（~ 按当前 HOME 展开）"""
        return Path(os.path.expanduser(self.cache_dir))

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(Path(os.path.expanduser(str(path))))
        except (yaml.YAMLError, ValueError, OSError) as e:
            raise ConfigError(f"配置文件无效: {path}: {e}") from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()} - {"extra"}
        # 空值（如 `elevate_cmd:`）保留默认
        matched = {k: str(v) for k, v in data.items() if k in known and v is not None}
        extra = {k: v for k, v in data.items() if k not in known}
        if extra:
            logger.warning("忽略未知配置项: %s", ", ".join(sorted(extra)))
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg


def load_settings() -> Settings:
    """按 PKGBATCH_CONFIG 或默认位置加载配置"""
    path = os.getenv(CONFIG_ENV) or DEFAULT_CONFIG_FILE
    settings = Settings.from_file(path)
    logger.debug("配置来源: %s", path)
    return settings


@dataclass(frozen=True)
class RunConfig:
    """单次运行配置（不可变）"""

    mode: Mode
    force_download: bool = False
    allow_root: bool = False
    pkg_config_path: str = ""

    def resolved_pkg_config_path(self, settings: Settings) -> str:
        """未指定覆盖值时使用默认 pkg-config 搜索路径"""
        return self.pkg_config_path or settings.default_pkg_config_path

    def build_env(self, settings: Settings) -> dict[str, str]:
        """构建命令使用的环境变量（继承当前进程 + PKG_CONFIG_PATH）"""
        return {**os.environ, "PKG_CONFIG_PATH": self.resolved_pkg_config_path(settings)}

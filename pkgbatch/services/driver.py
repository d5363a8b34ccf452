"""包构建驱动

状态机（以源码树中的标记文件区分）:

  install:
    NotBuilt ── configure → build → install ──> Built+Installed (创建标记)
    Built+Installed ── 跳过全部步骤，重新 touch 标记

  uninstall:
    任意状态 ── 提权执行 uninstall ──> 删除标记

任一步骤失败立即抛 ExecutionError，退出码沿用该步骤的返回码。
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

from pkgbatch.core.config import RunConfig, Settings
from pkgbatch.core.exceptions import CacheError, ExecutionError
from pkgbatch.core.models import Mode, PackageTree
from pkgbatch.utils.privilege import with_elevation
from pkgbatch.utils.shell import CommandExecutor, run_cmd

logger = logging.getLogger(__name__)


class PackageDriver:
    """在源码树目录内执行构建/安装/卸载命令"""

    def __init__(
        self,
        run_config: RunConfig,
        settings: Settings,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.run_config = run_config
        self.settings = settings
        self.executor = executor

    def marker_path(self, tree: PackageTree) -> Path:
        return tree.entry_point_dir / self.settings.marker_name

    def is_installed(self, tree: PackageTree) -> bool:
        return self.marker_path(tree).exists()

    def do_package(self, mode: Mode, tree: PackageTree) -> None:
        """按模式处理单个源码树"""
        if mode is Mode.INSTALL:
            self.install(tree)
        else:
            self.uninstall(tree)

    def install(self, tree: PackageTree) -> None:
        marker = self.marker_path(tree)
        if marker.exists():
            logger.info("%s: already installed，跳过 configure/build/install", tree.name)
            self._touch_marker(marker)
            return

        configure = [*shlex.split(self.settings.configure_cmd), *tree.configure_args]
        try:
            self._run(tree, configure, "configure")
        except ExecutionError:
            logger.error(
                "%s: configure 失败，参数: %s", tree.name,
                shlex.join(tree.configure_args) or "(无)",
            )
            raise

        self._run_step(tree, shlex.split(self.settings.build_cmd), "build")

        install = with_elevation(self.settings.install_cmd, self.settings.elevate_cmd)
        self._run_step(tree, install, "install")

        self._touch_marker(marker)
        logger.info("%s: 安装完成", tree.name)

    def uninstall(self, tree: PackageTree) -> None:
        cmd = with_elevation(
            self.settings.uninstall_cmd, self.settings.elevate_cmd, always=True,
        )
        self._run_step(tree, cmd, "uninstall")

        marker = self.marker_path(tree)
        try:
            marker.unlink(missing_ok=True)
        except OSError as e:
            raise CacheError(f"无法删除安装标记 {marker}: {e}") from e
        logger.info("%s: 卸载完成", tree.name)

    def _touch_marker(self, marker: Path) -> None:
        try:
            marker.touch()
        except OSError as e:
            raise CacheError(f"无法写入安装标记 {marker}: {e}") from e

    def _run_step(self, tree: PackageTree, cmd: list[str], label: str) -> None:
        try:
            self._run(tree, cmd, label)
        except ExecutionError:
            logger.error("%s: %s 失败", tree.name, label)
            raise

    def _run(self, tree: PackageTree, cmd: list[str], label: str) -> None:
        run_cmd(
            cmd, cwd=str(tree.entry_point_dir),
            env=self.run_config.build_env(self.settings),
            label=label, capture=False, executor=self.executor,
        )

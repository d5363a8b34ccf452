"""pkgbatch 命令行接口

从标准输入逐行读取 "URL [configure 参数...]"，批量安装或卸载源码包。
"""

from __future__ import annotations

import logging
import os
import sys

import click

from pkgbatch import __version__
from pkgbatch.cli.args import HelpRequested, parse_run_args
from pkgbatch.core.config import RunConfig, Settings, load_settings
from pkgbatch.core.exceptions import PkgBatchError, UsageError
from pkgbatch.services.cache import ArchiveCache
from pkgbatch.services.driver import PackageDriver
from pkgbatch.services.fetcher import Fetcher
from pkgbatch.services.orchestrator import Orchestrator
from pkgbatch.utils.logger import setup_logging
from pkgbatch.utils.privilege import acting_identity, enforce_root_policy

logger = logging.getLogger(__name__)

CONTEXT_SETTINGS = {
    # -h / --help 由 parse_run_args 按顺序处理
    "help_option_names": [],
    "ignore_unknown_options": True,
}


@click.command(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def main(ctx: click.Context, args: tuple[str, ...]) -> None:
    """pkgbatch - 批量安装/卸载 configure/make 源码包

    \b
    用法:
      pkgbatch install [-D] [--docker|-e] [PKG_CONFIG_PATH] < packages.txt
      pkgbatch uninstall [--docker|-e] [PKG_CONFIG_PATH] < packages.txt

    \b
    参数:
      install / uninstall  运行模式（二选一）
      -D                   强制重新下载（不能与 uninstall 同时使用）
      --docker, -e         允许以 root 身份运行（容器内）
      PKG_CONFIG_PATH      覆盖默认 pkg-config 搜索路径

    \b
    输入格式（每行一条记录）:
      http://example.com/foo-1.0.tar.gz --prefix=/usr/local --with-bar

    任一步骤失败立即中止，退出码为失败步骤的返回码。
    """
    setup_logging(
        level=os.getenv("PKGBATCH_LOG_LEVEL", "INFO"),
        json_output=os.getenv("PKGBATCH_LOG_JSON", "") == "1",
    )
    try:
        run_config = parse_run_args(args)
    except HelpRequested:
        click.echo(ctx.get_help())
        ctx.exit(0)
    except UsageError as e:
        click.echo(f"错误: {e}\n")
        click.echo(ctx.get_help())
        ctx.exit(e.exit_code)

    try:
        enforce_root_policy(run_config.allow_root)
        settings = load_settings()
        _prepare_environment(run_config, settings)
        cache = ArchiveCache(settings.cache_path)
        cache.init()

        orchestrator = Orchestrator(
            run_config,
            Fetcher(cache, settings),
            PackageDriver(run_config, settings),
        )
        count = orchestrator.run(sys.stdin)
    except PkgBatchError as e:
        logger.error("[%s] %s", e.code, e)
        ctx.exit(e.exit_code)

    logger.info("全部完成: %d 个包 (%s)", count, run_config.mode.value)


def _prepare_environment(run_config: RunConfig, settings: Settings) -> None:
    """导出 PKG_CONFIG_PATH 并记录当前身份"""
    os.environ["PKG_CONFIG_PATH"] = run_config.resolved_pkg_config_path(settings)
    user, home = acting_identity()
    logger.info("用户: %s  HOME: %s", user, home)
    logger.info("PKG_CONFIG_PATH=%s", os.environ["PKG_CONFIG_PATH"])

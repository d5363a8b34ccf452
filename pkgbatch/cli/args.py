"""运行参数解析

参数按从左到右顺序解析，冲突组合抛 UsageError:
  -h / --help             打印帮助（此前的参数错误优先报告）
  install / uninstall     运行模式，只能出现一次
  -D                      强制重新下载，不能与 uninstall 同时使用
  --docker / -e           允许以 root 身份运行
  其他裸参数               覆盖 PKG_CONFIG_PATH，只能出现一次
"""

from __future__ import annotations

from pkgbatch.core.config import RunConfig
from pkgbatch.core.exceptions import UsageError
from pkgbatch.core.models import Mode

_ALLOW_ROOT_FLAGS = frozenset(("--docker", "-e"))
_HELP_FLAGS = frozenset(("-h", "--help"))


class HelpRequested(Exception):
    """遇到 -h / --help：打印帮助并以 0 退出"""


def parse_run_args(tokens: list[str] | tuple[str, ...]) -> RunConfig:
    mode: Mode | None = None
    force_download = False
    allow_root = False
    pkg_config_path: str | None = None

    for tok in tokens:
        if tok in _HELP_FLAGS:
            raise HelpRequested()
        if tok in _ALLOW_ROOT_FLAGS:
            allow_root = True
        elif tok in ("install", "uninstall"):
            if mode is not None:
                raise UsageError(f"运行模式重复指定: {mode.value} / {tok}")
            mode = Mode(tok)
            if mode is Mode.UNINSTALL and force_download:
                raise UsageError("-D 不能与 uninstall 同时使用")
        elif tok == "-D":
            if mode is Mode.UNINSTALL:
                raise UsageError("-D 不能与 uninstall 同时使用")
            force_download = True
        elif tok.startswith("-"):
            raise UsageError(f"未知选项: {tok}")
        else:
            if pkg_config_path is not None:
                raise UsageError(f"PKG_CONFIG_PATH 只能指定一次: {tok}")
            pkg_config_path = tok

    if mode is None:
        raise UsageError("必须指定 install 或 uninstall")

    return RunConfig(
        mode=mode,
        force_download=force_download,
        allow_root=allow_root,
        pkg_config_path=pkg_config_path or "",
    )

"""测试共享 fixture — 假执行器 + 源码包构造

FakeExecutor 实现 CommandExecutor 协议，记录每次调用，
按命令子串返回预设的失败码；遇到 wget 时把预先构造好的
tar.gz 复制到目标位置，模拟下载。
"""

from __future__ import annotations

import io
import shlex
import shutil
import tarfile
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from pkgbatch.utils import privilege
from pkgbatch.utils.logger import reset_logging
from pkgbatch.utils.shell import CommandResult, get_executor, set_executor

CONFIGURE_SCRIPT = '#!/bin/sh\necho "$@" > configured.txt\n'


@dataclass
class Call:
    args: list[str]
    cwd: str
    env: dict[str, str] | None = None

    @property
    def line(self) -> str:
        return shlex.join(self.args)


@dataclass
class FakeExecutor:
    """记录调用的假执行器"""

    failures: dict[str, int] = field(default_factory=dict)  # 命令行子串 -> 返回码
    exact_failures: dict[str, int] = field(default_factory=dict)  # 完整命令行 -> 返回码
    archives: dict[str, Path] = field(default_factory=dict)  # URL -> 本地 tar.gz
    calls: list[Call] = field(default_factory=list)

    def execute(self, cmd, *, cwd=".", env=None, capture=True) -> CommandResult:
        args = shlex.split(cmd) if isinstance(cmd, str) else list(cmd)
        call = Call(args=args, cwd=cwd, env=env)
        self.calls.append(call)
        if call.line in self.exact_failures:
            return CommandResult(returncode=self.exact_failures[call.line], stderr="failed")
        for pattern, rc in self.failures.items():
            if pattern in call.line:
                return CommandResult(returncode=rc, stderr=f"{pattern} failed")
        if args and args[0] == "wget":
            dest, url = args[2], args[3]
            src = self.archives.get(url)
            if src is None:
                return CommandResult(returncode=8, stderr="404 Not Found")
            shutil.copy(src, dest)
        return CommandResult(returncode=0)

    def lines(self) -> list[str]:
        return [c.line for c in self.calls]

    def downloads(self) -> list[Call]:
        return [c for c in self.calls if c.args and c.args[0] == "wget"]


def make_tarball(
    dest: Path,
    top: str = "foo-1.0",
    configure_dirs: tuple[str, ...] = ("",),
    extra_files: dict[str, str] | None = None,
) -> Path:
    """构造 tar.gz 源码包，configure_dirs 为 configure 所在的相对子目录"""
    dest.parent.mkdir(parents=True, exist_ok=True)
    files = {"Makefile": "all:\n\ttrue\n", **(extra_files or {})}
    with tarfile.open(dest, "w:gz") as tf:
        for sub in configure_dirs:
            member = "/".join(p for p in (top, sub, "configure") if p)
            _add_file(tf, member, CONFIGURE_SCRIPT, mode=0o755)
        for rel, content in files.items():
            _add_file(tf, f"{top}/{rel}", content)
    return dest


def _add_file(tf: tarfile.TarFile, name: str, content: str, mode: int = 0o644) -> None:
    data = content.encode("utf-8")
    info = tarfile.TarInfo(name)
    info.size = len(data)
    info.mode = mode
    tf.addfile(info, io.BytesIO(data))


@pytest.fixture()
def fake_executor():
    """替换全局默认执行器，测试结束后恢复"""
    old = get_executor()
    fake = FakeExecutor()
    set_executor(fake)
    yield fake
    set_executor(old)


@pytest.fixture(autouse=True)
def non_root(monkeypatch):
    """默认以普通用户身份运行，需要 root 的用例自行覆盖"""
    monkeypatch.setattr(privilege, "is_root", lambda: False)


@pytest.fixture()
def make_archive(tmp_path):
    """源码包工厂: make_archive("foo-1.0.tar.gz", top="foo-1.0", ...)"""

    def _make(filename: str = "foo-1.0.tar.gz", **kwargs) -> Path:
        return make_tarball(tmp_path / "upstream" / filename, **kwargs)

    return _make


@pytest.fixture(autouse=True)
def _clean_logging():
    """CLI 会把 handler 绑定到 CliRunner 的临时 stdout，用例结束后清理"""
    yield
    reset_logging()

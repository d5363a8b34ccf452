"""权限处理 — root 策略、降权、提权命令前缀

启动时先执行 enforce_root_policy()，再做其他任何事情:
  1. 非 root                         → 直接继续
  2. root 且能识别原始非 root 用户     → 降权为该用户后继续
  3. root 且允许 (--docker / -e)     → 以提权模式继续
  4. 其他                            → PrivilegeError (退出码 200)
"""

from __future__ import annotations

import logging
import os
import pwd
import shlex

from pkgbatch.core.exceptions import PrivilegeError

logger = logging.getLogger(__name__)

# 提权包装器留下的原始用户信息
_USER_ENV_VARS = ("SUDO_USER", "DOAS_USER")
_UID_ENV_VARS = ("PKEXEC_UID",)


def is_root() -> bool:
    return os.geteuid() == 0


def original_user() -> pwd.struct_passwd | None:
    """识别经由 sudo / doas / pkexec 调用前的原始非 root 用户"""
    for var in _USER_ENV_VARS:
        name = os.environ.get(var, "")
        if not name:
            continue
        try:
            pw = pwd.getpwnam(name)
        except KeyError:
            logger.warning("%s=%s 不是有效用户，忽略", var, name)
            continue
        if pw.pw_uid != 0:
            return pw
    for var in _UID_ENV_VARS:
        value = os.environ.get(var, "")
        if not value.isdigit():
            continue
        try:
            pw = pwd.getpwuid(int(value))
        except KeyError:
            logger.warning("%s=%s 不是有效用户，忽略", var, value)
            continue
        if pw.pw_uid != 0:
            return pw
    return None


def drop_privileges(pw: pwd.struct_passwd) -> None:
    """将当前进程降权为指定用户，并同步 HOME / USER / LOGNAME"""
    os.initgroups(pw.pw_name, pw.pw_gid)
    os.setgid(pw.pw_gid)
    os.setuid(pw.pw_uid)
    os.environ["HOME"] = pw.pw_dir
    os.environ["USER"] = pw.pw_name
    os.environ["LOGNAME"] = pw.pw_name


def enforce_root_policy(allow_root: bool) -> None:
    """执行 root 运行策略，必须在任何其他逻辑之前调用

    Raises:
        PrivilegeError: root 运行且未允许、也识别不到原始用户
    """
    if not is_root():
        return
    pw = original_user()
    if pw is not None:
        logger.info("检测到提权调用，降权为原始用户: %s (uid=%d)", pw.pw_name, pw.pw_uid)
        drop_privileges(pw)
        return
    if allow_root:
        logger.warning("以 root 身份运行（提权模式，--docker/-e）")
        return
    raise PrivilegeError(
        "请不要以 root 身份运行 pkgbatch；需要时会自动调用提权命令。"
        "容器内运行请加 --docker 或 -e"
    )


def acting_identity() -> tuple[str, str]:
    """当前有效用户名与 HOME 目录"""
    try:
        name = pwd.getpwuid(os.geteuid()).pw_name
    except KeyError:
        name = str(os.geteuid())
    return name, os.path.expanduser("~")


def with_elevation(
    cmd: str, elevate_cmd: str, *, always: bool = False,
) -> list[str]:
    """给命令加提权前缀

    always=False 时已是 root 则不加前缀；always=True 时无条件加。
    """
    args = shlex.split(cmd)
    if not elevate_cmd or (is_root() and not always):
        return args
    return [*shlex.split(elevate_cmd), *args]

"""统一异常体系

所有业务异常继承 PkgBatchError。服务层只负责抛出，CLI 层统一捕获，
按 exit_code 退出进程，不做任何本地恢复或重试。
"""

from __future__ import annotations


class PkgBatchError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"
    exit_code: int = 1

    def __init__(self, message: str) -> None:
        super().__init__(message)


class UsageError(PkgBatchError):
    """命令行参数错误或互相冲突"""

    code = "USAGE_ERROR"


class PrivilegeError(PkgBatchError):
    """以 root 运行但未允许，且无法识别原始用户"""

    code = "PRIVILEGE_ERROR"
    exit_code = 200


class ConfigError(PkgBatchError):
    """配置文件内容无效"""

    code = "CONFIG_ERROR"


class CacheError(PkgBatchError):
    """缓存目录初始化失败"""

    code = "CACHE_ERROR"


class ValidationError(PkgBatchError):
    """输入数据校验失败（URL、输入行等）"""

    code = "VALIDATION_ERROR"


class ExecutionError(PkgBatchError):
    """外部命令执行失败，退出码沿用该命令的返回值"""

    code = "EXECUTION_ERROR"

    def __init__(self, message: str, returncode: int = 1) -> None:
        super().__init__(message)
        self.returncode = returncode
        # 被信号终止时 returncode 为负值，进程退出码统一映射为 1
        self.exit_code = returncode if returncode > 0 else 1


class DownloadError(ExecutionError):
    """下载命令失败"""

    code = "DOWNLOAD_ERROR"


class ArchiveError(PkgBatchError):
    """归档文件无法读取或解压"""

    code = "ARCHIVE_ERROR"
    exit_code = 2


class EntryPointError(PkgBatchError):
    """解压结果中没有、或有多个 configure 入口"""

    code = "ENTRY_POINT_ERROR"
    exit_code = 2

    def __init__(self, message: str, candidates: list[str] | None = None) -> None:
        super().__init__(message)
        self.candidates = candidates or []

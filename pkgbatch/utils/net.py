"""网络工具 — URL 校验与缓存文件名推导"""

from __future__ import annotations

from pathlib import PurePosixPath
from urllib.parse import urlparse

from pkgbatch.core.exceptions import ValidationError

_ALLOWED_SCHEMES = frozenset(("http", "https", "ftp"))


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https/ftp，防止 file:// 等非预期协议

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https/ftp: {url}"
        )


def url_basename(url: str) -> str:
    """取 URL 路径的最后一段作为文件名（忽略 query / fragment）

    Raises:
        ValidationError: 无法解析出文件名
    """
    name = PurePosixPath(urlparse(url).path).name
    if not name:
        raise ValidationError(f"无法从 URL 解析文件名: {url}")
    return name

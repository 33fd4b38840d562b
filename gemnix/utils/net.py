"""网络工具 - URL 校验与凭据拆分"""

from __future__ import annotations

import re
from urllib.parse import unquote, urlsplit, urlunsplit

from gemnix.core.exceptions import ValidationError

_ALLOWED_SCHEMES = frozenset(("http", "https"))
_UNSAFE_CHARS_RE = re.compile(r"[^\w-]+")


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验远程 URL 仅使用 http/https

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    scheme = urlsplit(url).scheme
    if scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{scheme}'{label}，仅支持 http/https: {url}"
        )


def split_userinfo(url: str) -> tuple[str, str | None, str | None]:
    """拆出 URL 中内嵌的 user:password，返回 (去掉凭据的 URL, user, password)"""
    parts = urlsplit(url)
    if parts.username is None:
        return url, None, None
    netloc = parts.hostname or ""
    if parts.port is not None:
        netloc = f"{netloc}:{parts.port}"
    stripped = urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
    password = unquote(parts.password) if parts.password is not None else None
    return stripped, unquote(parts.username), password


def cache_key(url: str) -> str:
    """把 URL 编码为可安全用作文件名的缓存键"""
    return _UNSAFE_CHARS_RE.sub("_", url)

"""Nix 表达式序列化

dict -> 属性集（键排序，非标识符键加引号），list -> 列表，
str -> 转义后的字符串，None -> null。
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from gemnix.utils.yaml_io import atomic_write

_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_'-]*$")
_KEYWORDS = frozenset(("if", "then", "else", "assert", "with", "let", "in", "rec", "inherit", "or"))
_INDENT = "  "


def quote_string(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("${", "\\${")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def attr_name(key: str) -> str:
    if _IDENTIFIER_RE.match(key) and key not in _KEYWORDS:
        return key
    return quote_string(key)


def serialize(obj: Any, level: int = 0) -> str:
    """把 Python 对象渲染为 Nix 表达式文本"""
    if obj is None:
        return "null"
    if isinstance(obj, bool):
        return "true" if obj else "false"
    if isinstance(obj, (int, float)):
        return str(obj)
    if isinstance(obj, str):
        return quote_string(obj)
    if isinstance(obj, dict):
        return _serialize_attrs(obj, level)
    if isinstance(obj, (list, tuple)):
        return _serialize_list(list(obj), level)
    raise TypeError(f"无法序列化为 Nix: {type(obj).__name__}")


def _serialize_attrs(obj: dict, level: int) -> str:
    if not obj:
        return "{}"
    pad = _INDENT * (level + 1)
    lines = [
        f"{pad}{attr_name(str(k))} = {serialize(obj[k], level + 1)};"
        for k in sorted(obj, key=str)
    ]
    return "{\n" + "\n".join(lines) + "\n" + _INDENT * level + "}"


def _serialize_list(items: list, level: int) -> str:
    if not items:
        return "[]"
    if all(not isinstance(i, (dict, list, tuple)) for i in items):
        return "[" + " ".join(serialize(i, level) for i in items) + "]"
    pad = _INDENT * (level + 1)
    body = "\n".join(f"{pad}{serialize(i, level + 1)}" for i in items)
    return "[\n" + body + "\n" + _INDENT * level + "]"


def render_gemset(entries: dict[str, dict]) -> str:
    """渲染完整 gemset.nix 文件内容"""
    return serialize(entries) + "\n"


def write_gemset(path: str | Path, entries: dict[str, dict]) -> Path:
    out = Path(path)
    atomic_write(out, render_gemset(entries))
    return out

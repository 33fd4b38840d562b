"""Gemfile 扫描

Gemfile 是 Ruby DSL，这里只做行级扫描，提取 group / platform 约束:

    group :development, :test do        块内的 gem 继承 groups
    platforms :mri, :mingw do           块内的 gem 继承 platforms
    gem "pg", group: :production        行内选项（group/groups/platform/platforms）

其他 `do ... end` 块（source / git / path / install_if）只做栈平衡，不影响约束。
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from gemnix.core.models import DEFAULT_GROUP, DependencyConstraint, ordered_union

logger = logging.getLogger(__name__)

_GEM_RE = re.compile(r"""^gem\s*\(?\s*["'](?P<name>[^"']+)["'](?P<rest>.*)$""")
_BLOCK_RE = re.compile(r"^(?P<kind>group|platforms?)\b\s*\(?(?P<args>.*?)\)?\s+do\s*(\|.*\|)?$")
_DO_RE = re.compile(r"\bdo\s*(\|[^|]*\|)?$")
_SYMBOL_RE = re.compile(r""":(\w+)|["'](\w+)["']""")
# group: :test / groups: [:a, :b] / :platforms => [:mri]
_OPTION_RE = re.compile(
    r"""(?:(?P<key>groups?|platforms?):|:(?P<rkey>groups?|platforms?)\s*=>)\s*"""
    r"""(?P<value>%[iw]\[[^\]]*\]|\[[^\]]*\]|:\w+|["']\w+["'])"""
)


@dataclass
class _Frame:
    groups: tuple[str, ...] = ()
    platforms: tuple[str, ...] = ()


def _symbols(text: str) -> tuple[str, ...]:
    if text.startswith("%"):
        return tuple(text[3:-1].split())
    return tuple(a or b for a, b in _SYMBOL_RE.findall(text))


def _strip_comment(line: str) -> str:
    quote = ""
    for i, ch in enumerate(line):
        if quote:
            if ch == quote:
                quote = ""
        elif ch in "\"'":
            quote = ch
        elif ch == "#":
            return line[:i]
    return line


def scan_gemfile(text: str) -> dict[str, DependencyConstraint]:
    """返回 Gemfile 中声明的 name -> DependencyConstraint（按出现顺序）"""
    stack: list[_Frame] = []
    result: dict[str, DependencyConstraint] = {}

    for raw in text.splitlines():
        line = _strip_comment(raw).strip()
        if not line:
            continue

        if line == "end" or line.startswith("end "):
            if stack:
                stack.pop()
            continue

        m = _BLOCK_RE.match(line)
        if m:
            values = _symbols(m.group("args"))
            if m.group("kind") == "group":
                stack.append(_Frame(groups=values))
            else:
                stack.append(_Frame(platforms=values))
            continue

        m = _GEM_RE.match(line)
        if m:
            name = m.group("name")
            groups = ordered_union(*(f.groups for f in stack))
            platforms = ordered_union(*(f.platforms for f in stack))
            for opt in _OPTION_RE.finditer(m.group("rest")):
                key = opt.group("key") or opt.group("rkey")
                values = _symbols(opt.group("value"))
                if key.startswith("group"):
                    groups = ordered_union(groups, values)
                else:
                    platforms = ordered_union(platforms, values)
            result[name] = DependencyConstraint(
                name=name,
                groups=groups or (DEFAULT_GROUP,),
                platforms=platforms,
            )
            continue

        if _DO_RE.search(line):
            stack.append(_Frame())

    return result


def manifest_constraints(
    lock_dependencies: list[str],
    gemfile: str | Path | None = None,
) -> list[DependencyConstraint]:
    """合并 Gemfile 扫描结果与锁文件 DEPENDENCIES

    锁文件中有而 Gemfile 未扫描到的顶层依赖按 default 组处理。
    """
    scanned: dict[str, DependencyConstraint] = {}
    if gemfile is not None and Path(gemfile).is_file():
        scanned = scan_gemfile(Path(gemfile).read_text(encoding="utf-8"))
        logger.debug("Gemfile 扫描到 %d 个依赖", len(scanned))
    elif gemfile is not None:
        logger.warning("Gemfile 不存在，全部顶层依赖按 default 组处理: %s", gemfile)

    constraints = dict(scanned)
    for name in lock_dependencies:
        constraints.setdefault(name, DependencyConstraint(name=name))
    return list(constraints.values())

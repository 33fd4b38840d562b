"""Gemfile.lock 解析

按段解析:
  GIT / PATH / GEM   来源段，包含 remote 等属性与 specs 列表
  DEPENDENCIES       Gemfile 顶层依赖
其余段（PLATFORMS / BUNDLED WITH / RUBY VERSION / CHECKSUMS 等）跳过。
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from gemnix.core.exceptions import LockfileError, UnknownOriginError
from gemnix.core.models import GitOrigin, LockedPackage, Origin, PathOrigin, RegistryOrigin

logger = logging.getLogger(__name__)

_SOURCE_SECTIONS = ("GIT", "PATH", "GEM")
_KNOWN_SECTIONS = _SOURCE_SECTIONS + (
    "PLATFORMS", "DEPENDENCIES", "BUNDLED WITH", "RUBY VERSION", "CHECKSUMS",
)

# name (version[-platform])[!]，版本号本身不含 '-'
_NAME_VERSION_RE = re.compile(
    r"^(?P<name>[^\s(!]+)(?: \((?P<version>[^-)]*)(?:-(?P<platform>[^)]*))?\))?(?P<pinned>!)?$"
)
_ATTR_RE = re.compile(r"^(?P<key>[a-z_]+): ?(?P<value>.*)$")
_DEP_NAME_RE = re.compile(r"^([^\s(!]+)")


@dataclass
class Lockfile:
    """解析后的锁文件"""

    packages: list[LockedPackage] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)


@dataclass
class _SourceBlock:
    kind: str
    attrs: dict[str, list[str]] = field(default_factory=dict)
    specs: list[tuple[str, str, str | None, list[str]]] = field(default_factory=list)

    def attr(self, key: str) -> str:
        values = self.attrs.get(key) or [""]
        return values[0]

    def origin(self) -> Origin:
        if self.kind == "GEM":
            return RegistryOrigin(remotes=tuple(self.attrs.get("remote", [])))
        if self.kind == "GIT":
            return GitOrigin(
                url=self.attr("remote"),
                revision=self.attr("revision"),
                submodules=self.attr("submodules") == "true",
            )
        if self.kind == "PATH":
            return PathOrigin(path=self.attr("remote"))
        raise UnknownOriginError(f"不支持的锁文件来源段: {self.kind}")


def parse_lockfile(text: str) -> Lockfile:
    """解析 Gemfile.lock 文本

    Raises:
        LockfileError: 行格式无法识别
        UnknownOriginError: 出现不支持的来源段（如 PLUGIN SOURCE）
    """
    lock = Lockfile()
    blocks: list[_SourceBlock] = []
    section = ""
    block: _SourceBlock | None = None

    for lineno, line in enumerate(text.splitlines(), 1):
        if not line.strip():
            continue
        indent = len(line) - len(line.lstrip(" "))
        content = line.strip()

        if indent == 0:
            section = content
            block = None
            if section in _SOURCE_SECTIONS or section.endswith("SOURCE"):
                block = _SourceBlock(kind=section)
                blocks.append(block)
            elif section not in _KNOWN_SECTIONS:
                logger.debug("忽略未知段: %s", section)
            continue

        if block is not None:
            _parse_source_line(block, indent, content, lineno)
        elif section == "DEPENDENCIES":
            m = _DEP_NAME_RE.match(content)
            if m is None:
                raise LockfileError(f"第 {lineno} 行依赖格式无法识别: {content}")
            lock.dependencies.append(m.group(1))

    for b in blocks:
        origin = b.origin()
        for name, version, platform, deps in b.specs:
            lock.packages.append(LockedPackage(
                name=name,
                version=version,
                origin=origin,
                platform=platform,
                dependencies=tuple(deps),
            ))
    logger.debug("锁文件解析完成: %d 个包变体", len(lock.packages))
    return lock


def _parse_source_line(block: _SourceBlock, indent: int, content: str, lineno: int) -> None:
    if indent == 2:
        if content == "specs:":
            return
        m = _ATTR_RE.match(content)
        if m is None:
            raise LockfileError(f"第 {lineno} 行属性格式无法识别: {content}")
        block.attrs.setdefault(m.group("key"), []).append(m.group("value"))
    elif indent == 4:
        m = _NAME_VERSION_RE.match(content)
        if m is None or not m.group("version"):
            raise LockfileError(f"第 {lineno} 行 spec 格式无法识别: {content}")
        platform = m.group("platform") or None
        block.specs.append((m.group("name"), m.group("version"), platform, []))
    elif indent == 6:
        if not block.specs:
            raise LockfileError(f"第 {lineno} 行依赖不属于任何 spec: {content}")
        block.specs[-1][3].append(content.split(" ", 1)[0])
    else:
        raise LockfileError(f"第 {lineno} 行缩进不符: {content}")


def read_lockfile(path: str | Path) -> Lockfile:
    lock_path = Path(path)
    try:
        text = lock_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise LockfileError(f"锁文件不存在: {lock_path}") from e
    return parse_lockfile(text)

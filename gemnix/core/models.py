"""核心数据模型

锁定包、来源、约束、来源描述符与最终 gemset 条目集中定义于此，
其他模块统一从这里导入。
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

# 纯 Ruby（与平台无关）的平台标记
PURE_PLATFORM = "ruby"

DEFAULT_GROUP = "default"

# nix-hash --to-base32 输出的 sha256 形式
SHA256_32 = re.compile(r"^[a-z0-9]{52}$", re.MULTILINE)


def ordered_union(*items: Iterable[str]) -> tuple[str, ...]:
    """按首次出现顺序合并去重"""
    return tuple(dict.fromkeys(x for seq in items for x in seq))


def is_pure_platform(platform: str | None) -> bool:
    return platform is None or platform == PURE_PLATFORM


# =========================================================================
# 来源（锁文件中的 GEM / GIT / PATH 段）
# =========================================================================

@dataclass(frozen=True)
class RegistryOrigin:
    """gem 制品仓库来源"""

    remotes: tuple[str, ...]


@dataclass(frozen=True)
class GitOrigin:
    """git 修订来源"""

    url: str
    revision: str
    submodules: bool = False


@dataclass(frozen=True)
class PathOrigin:
    """本地路径来源"""

    path: str


Origin = Union[RegistryOrigin, GitOrigin, PathOrigin]


@dataclass(frozen=True)
class LockedPackage:
    """锁文件中的一个 (name, platform) 变体"""

    name: str
    version: str
    origin: Origin
    platform: str | None = None
    dependencies: tuple[str, ...] = ()

    @property
    def is_platform_specific(self) -> bool:
        return not is_pure_platform(self.platform)

    @property
    def platform_token(self) -> str:
        return self.platform or PURE_PLATFORM

    @property
    def full_name(self) -> str:
        """name-version[-platform]，即 .gem 文件的基础名"""
        if self.is_platform_specific:
            return f"{self.name}-{self.version}-{self.platform}"
        return f"{self.name}-{self.version}"


# =========================================================================
# 约束
# =========================================================================

@dataclass(frozen=True)
class DependencyConstraint:
    """Gemfile 顶层声明的依赖约束"""

    name: str
    groups: tuple[str, ...] = (DEFAULT_GROUP,)
    platforms: tuple[str, ...] = ()


@dataclass(frozen=True)
class EffectiveConstraint:
    """闭包结果: 所有祖先路径要求的 groups / platforms 并集"""

    name: str
    groups: tuple[str, ...] = (DEFAULT_GROUP,)
    platforms: tuple[str, ...] = ()

    def covers(self, other: EffectiveConstraint) -> bool:
        """other 的 groups（除 default 外）与 platforms 是否已被本约束包含"""
        missing_groups = set(other.groups) - set(self.groups) - {DEFAULT_GROUP}
        missing_platforms = set(other.platforms) - set(self.platforms)
        return not missing_groups and not missing_platforms

    def union(self, other: EffectiveConstraint) -> EffectiveConstraint:
        return EffectiveConstraint(
            name=self.name,
            groups=ordered_union(other.groups, self.groups),
            platforms=ordered_union(other.platforms, self.platforms),
        )


# =========================================================================
# 来源描述符
# =========================================================================

@dataclass(frozen=True)
class RegistrySource:
    """type = gem"""

    remotes: tuple[str, ...]
    sha256: str
    target: str | None = None
    target_cpu: str | None = None
    target_os: str | None = None

    @property
    def platform(self) -> str | None:
        return self.target

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "type": "gem",
            "remotes": list(self.remotes),
            "sha256": self.sha256,
            "target": self.target,
        }
        if not is_pure_platform(self.target):
            d["targetCPU"] = self.target_cpu
            d["targetOS"] = self.target_os
        return d


@dataclass(frozen=True)
class GitSource:
    """type = git"""

    url: str
    rev: str
    sha256: str
    fetch_submodules: bool = False

    @property
    def platform(self) -> str | None:
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "git",
            "url": self.url,
            "rev": self.rev,
            "sha256": self.sha256,
            "fetchSubmodules": self.fetch_submodules,
        }


@dataclass(frozen=True)
class PathSource:
    """type = path"""

    path: str

    @property
    def platform(self) -> str | None:
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"type": "path", "path": self.path}


@dataclass(frozen=True)
class ResolveFailure:
    """单包解析失败的显式结果，保留失败原因用于诊断"""

    name: str
    reason: str
    code: str = "HASH_FETCH_FAILURE"

    @property
    def platform(self) -> str | None:
        return None

    def to_dict(self) -> None:
        return None


SourceDescriptor = Union[RegistrySource, GitSource, PathSource]


def _require_str(data: Mapping[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str) or not value:
        raise TypeError(f"{key} 不是非空字符串: {value!r}")
    return value


def _require_hash(data: Mapping[str, Any]) -> str:
    value = _require_str(data, "sha256")
    if not SHA256_32.fullmatch(value):
        raise ValueError(f"sha256 不是 52 位 base32: {value!r}")
    return value


def descriptor_from_dict(data: Mapping[str, Any]) -> SourceDescriptor:
    """从已持久化的 gemset 字典还原描述符

    Raises:
        KeyError / TypeError / ValueError: 条目残缺或类型不符
    """
    kind = data["type"]
    if kind == "gem":
        remotes = data["remotes"]
        if not isinstance(remotes, list) or not all(isinstance(r, str) for r in remotes):
            raise TypeError(f"remotes 不是字符串列表: {remotes!r}")
        return RegistrySource(
            remotes=tuple(remotes),
            sha256=_require_hash(data),
            target=data.get("target"),
            target_cpu=data.get("targetCPU"),
            target_os=data.get("targetOS"),
        )
    if kind == "git":
        return GitSource(
            url=_require_str(data, "url"),
            rev=_require_str(data, "rev"),
            sha256=_require_hash(data),
            fetch_submodules=bool(data.get("fetchSubmodules", False)),
        )
    if kind == "path":
        return PathSource(path=_require_str(data, "path"))
    raise ValueError(f"未知的来源类型: {kind!r}")


@dataclass(frozen=True)
class ResolvedVariant:
    """一个锁定变体及其解析（或缓存复用）得到的描述符"""

    package: LockedPackage
    descriptor: SourceDescriptor | ResolveFailure

    @property
    def platform(self) -> str | None:
        return self.descriptor.platform

    @property
    def failed(self) -> bool:
        return isinstance(self.descriptor, ResolveFailure)


# =========================================================================
# gemset 条目
# =========================================================================

@dataclass
class GemsetEntry:
    """单个包名在 gemset 中的最终记录"""

    version: str
    primary: SourceDescriptor | None
    groups: list[str] = field(default_factory=list)
    platforms: list[dict[str, str]] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    targets: list[SourceDescriptor] = field(default_factory=list)
    failures: list[ResolveFailure] = field(default_factory=list)
    cached: bool = False

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "version": self.version,
            "source": self.primary.to_dict() if self.primary else None,
            "targets": [t.to_dict() for t in self.targets],
            "groups": list(self.groups),
            "platforms": [dict(p) for p in self.platforms],
        }
        if self.dependencies:
            d["dependencies"] = list(self.dependencies)
        return d

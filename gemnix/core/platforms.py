"""gem 平台解析

两类"平台":
- Gemfile 中的平台名（mri / jruby / mri_31 ...），映射为 nix 侧的 {engine, version} 记录
- gem 制品的平台串（x86_64-linux / arm64-darwin-21 / java ...），解析为 (cpu, os, version)

后者的解析与比较规则与 RubyGems 的 Gem::Platform 保持一致:
  ==       三元组完全相等（远程 spec 精确匹配）
  matches  cpu 为空或 universal 视为通配（本地缓存兼容匹配）
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from gemnix.core.models import PURE_PLATFORM

_RUBY_VERSIONS = (
    "1.8", "1.9", "2.0", "2.1", "2.2", "2.3", "2.4", "2.5", "2.6", "2.7",
    "3.0", "3.1", "3.2",
)

_BASE_MAPPING: dict[str, list[dict[str, str]]] = {
    "ruby": [{"engine": "ruby"}, {"engine": "rbx"}, {"engine": "maglev"}],
    "mri": [{"engine": "ruby"}, {"engine": "maglev"}],
    "rbx": [{"engine": "rbx"}],
    "jruby": [{"engine": "jruby"}],
    "mswin": [{"engine": "mswin"}],
    "mswin64": [{"engine": "mswin64"}],
    "mingw": [{"engine": "mingw"}],
    "truffleruby": [{"engine": "ruby"}],
    "x64_mingw": [{"engine": "mingw"}],
}


def _build_mapping() -> dict[str, list[dict[str, str]]]:
    mapping: dict[str, list[dict[str, str]]] = {}
    for name, engines in _BASE_MAPPING.items():
        mapping[name] = engines
        for version in _RUBY_VERSIONS:
            suffix = version.replace(".", "", 1)
            mapping[f"{name}_{suffix}"] = [{**e, "version": version} for e in engines]
    return mapping


PLATFORM_MAPPING = _build_mapping()


def expand_platforms(names: tuple[str, ...] | list[str]) -> list[dict[str, str]]:
    """Gemfile 平台名 -> nix platforms 记录列表，未知平台名忽略"""
    result: list[dict[str, str]] = []
    for name in names:
        result.extend(dict(p) for p in PLATFORM_MAPPING.get(name, []))
    return result


# =========================================================================
# Gem::Platform
# =========================================================================

_VERSION_TAIL_RE = re.compile(r"\d+(\.\d+)?$")
_VERSION_ONLY_RE = re.compile(r"^\d+(\.\d+)?$")

# (pattern, os, 版本取自第几个分组)；按顺序匹配，首个命中生效
_OS_RULES: tuple[tuple[re.Pattern[str], str, int | None], ...] = (
    (re.compile(r"aix(\d+)?"), "aix", 1),
    (re.compile(r"cygwin"), "cygwin", None),
    (re.compile(r"darwin(\d+)?"), "darwin", 1),
    (re.compile(r"^macruby$"), "macruby", None),
    (re.compile(r"freebsd(\d+)?"), "freebsd", 1),
    (re.compile(r"^(java|jruby)$"), "java", None),
    (re.compile(r"^java([\d.]*)"), "java", 1),
    (re.compile(r"^dalvik(\d+)?$"), "dalvik", 1),
    (re.compile(r"^dotnet$"), "dotnet", None),
    (re.compile(r"^dotnet([\d.]*)"), "dotnet", 1),
    (re.compile(r"linux-?(\w+)?"), "linux", 1),
    (re.compile(r"mingw32"), "mingw32", None),
    (re.compile(r"mingw-?(\w+)?"), "mingw", 1),
    (re.compile(r"netbsdelf"), "netbsdelf", None),
    (re.compile(r"openbsd(\d+\.\d+)?"), "openbsd", 1),
    (re.compile(r"bitrig(\d+\.\d+)?"), "bitrig", 1),
    (re.compile(r"solaris(\d+\.\d+)?"), "solaris", 1),
)

_MSWIN_RE = re.compile(r"(mswin\d+)(_(\d+))?")
_WILDCARD_CPUS = (None, "universal")


@dataclass(frozen=True)
class GemPlatform:
    cpu: str | None
    os: str
    version: str | None = None

    @classmethod
    def parse(cls, platform: str) -> GemPlatform:
        parts = platform.split("-")
        # x86_64-linux-musl 之类: 把非版本号的尾段并回 os
        if len(parts) > 2 and not _VERSION_TAIL_RE.search(parts[-1]):
            extra = parts.pop()
            parts[-1] = f"{parts[-1]}-{extra}"

        cpu: str | None = parts.pop(0)
        if cpu and re.fullmatch(r"i\d86", cpu):
            cpu = "x86"

        if len(parts) == 2 and _VERSION_ONLY_RE.match(parts[1]):
            return cls(cpu=cpu, os=parts[0], version=parts[1])

        if not parts:
            os_name = cpu or ""
            cpu = None
        else:
            os_name = parts[0]

        m = _MSWIN_RE.search(os_name)
        if m:
            if cpu is None and m.group(1).endswith("32"):
                cpu = "x86"
            return cls(cpu=cpu, os=m.group(1), version=m.group(3))

        for pattern, name, group in _OS_RULES:
            m = pattern.search(os_name)
            if m:
                version = m.group(group) if group is not None else None
                return cls(cpu=cpu, os=name, version=version or None)
        return cls(cpu=cpu, os="unknown")

    def matches(self, other: GemPlatform) -> bool:
        """Gem::Platform#=== 的兼容匹配"""
        if (
            "universal" in (self.cpu, other.cpu)
            and self.os.startswith("mingw")
            and other.os.startswith("mingw")
        ):
            return True
        cpu_ok = (
            self.cpu in _WILDCARD_CPUS
            or other.cpu in _WILDCARD_CPUS
            or self.cpu == other.cpu
            or (self.cpu == "arm" and (other.cpu or "").startswith("arm"))
        )
        version_ok = self.version is None or other.version is None or self.version == other.version
        return cpu_ok and self.os == other.os and version_ok

    def __str__(self) -> str:
        return "-".join(p for p in (self.cpu, self.os, self.version) if p)


def platform_matches(locked: str, candidate: str) -> bool:
    """锁定平台与候选平台（文件名中的平台段）是否兼容"""
    if candidate == PURE_PLATFORM or locked == PURE_PLATFORM:
        return candidate == locked
    return GemPlatform.parse(locked).matches(GemPlatform.parse(candidate))


def platform_equals(locked: str, candidate: str) -> bool:
    """锁定平台与远程 spec 平台是否精确相等"""
    if candidate == PURE_PLATFORM or locked == PURE_PLATFORM:
        return candidate == locked
    return GemPlatform.parse(locked) == GemPlatform.parse(candidate)

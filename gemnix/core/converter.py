"""Gemfile.lock -> gemset 转换编排

流程:
  1. 锁文件 + Gemfile → 约束闭包
  2. 按包名分组锁定变体
  3. 每个包名: 缓存命中则复用描述符，否则逐变体解析
  4. 合并为 GemsetEntry，附上 groups / platforms
失败的包以显式的 ResolveFailure 记录在报告中，不会与成功结果混淆。

用法:
    cfg = Config(gemfile="Gemfile")
    report = GemsetConverter.from_config(cfg).convert()
    write_gemset(cfg.gemset, report.to_gemset())
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from gemnix.core.assembler import GemsetAssembler
from gemnix.core.closure import DependencyClosureBuilder
from gemnix.core.config import Config
from gemnix.core.fetch import BundlerSettings, Downloader, HashFetcher
from gemnix.core.gemset_cache import GemsetCache
from gemnix.core.models import (
    EffectiveConstraint,
    GemsetEntry,
    LockedPackage,
    ResolveFailure,
)
from gemnix.core.platforms import expand_platforms
from gemnix.core.resolver import SourceResolver
from gemnix.lock.gemfile import manifest_constraints
from gemnix.lock.gemset_reader import read_gemset
from gemnix.lock.lockfile import read_lockfile
from gemnix.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


@dataclass
class ConversionReport:
    """一次转换的结果汇总"""

    entries: dict[str, GemsetEntry] = field(default_factory=dict)
    cached: list[str] = field(default_factory=list)
    failures: list[ResolveFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures

    def to_gemset(self) -> dict[str, dict[str, Any]]:
        return {name: entry.to_dict() for name, entry in self.entries.items()}


class GemsetConverter:
    """把锁定包列表转换为 name -> GemsetEntry"""

    def __init__(
        self,
        packages: list[LockedPackage],
        constraints: Mapping[str, EffectiveConstraint],
        resolver: SourceResolver,
        *,
        cache: GemsetCache | None = None,
        assembler: GemsetAssembler | None = None,
    ) -> None:
        self.packages = packages
        self.constraints = constraints
        self.resolver = resolver
        self.cache = cache or GemsetCache()
        self.assembler = assembler or GemsetAssembler()

    @classmethod
    def from_config(
        cls, config: Config, executor: CommandExecutor | None = None,
    ) -> GemsetConverter:
        """从配置加载锁文件、Gemfile、现有 gemset，并组装解析链"""
        lock = read_lockfile(config.lockfile)
        declared = manifest_constraints(lock.dependencies, config.gemfile)
        constraints = DependencyClosureBuilder(
            build_tool=config.build_tool, lockfile=config.lockfile,
        ).build(declared, lock.packages)

        downloader = Downloader(
            config.download_cache_dir,
            settings=BundlerSettings(config.bundle_app_config),
        )
        fetcher = HashFetcher(
            downloader,
            gem_cache_dirs=config.gem_cache_dirs,
            executor=executor,
            homeless_dir=config.homeless_dir,
        )
        previous = read_gemset(config.gemset, executor) if config.gemset else {}
        return cls(
            lock.packages,
            constraints,
            SourceResolver(fetcher),
            cache=GemsetCache(previous),
            assembler=GemsetAssembler(build_tool=config.build_tool),
        )

    def convert(self) -> ConversionReport:
        by_name: dict[str, list[LockedPackage]] = {}
        for pkg in self.packages:
            by_name.setdefault(pkg.name, []).append(pkg)

        report = ConversionReport()
        for name, variants in by_name.items():
            entry = self._convert_one(name, variants)
            report.entries[name] = entry
            if entry.cached:
                report.cached.append(name)
            report.failures.extend(entry.failures)

        logger.info(
            "转换汇总: %d 个包, %d 个复用缓存, %d 个失败",
            len(report.entries), len(report.cached), len(report.failures),
        )
        if report.failures:
            logger.warning(
                "以下包未能解析: %s",
                ", ".join(f"{f.name} ({f.reason})" for f in report.failures),
            )
        return report

    def _convert_one(self, name: str, variants: list[LockedPackage]) -> GemsetEntry:
        resolved = self.cache.lookup(variants)
        cached = resolved is not None
        if resolved is None:
            logger.info("解析 %s", name)
            resolved = [self.resolver.resolve(v) for v in variants]

        constraint = self.constraints.get(name) or EffectiveConstraint(name)
        entry = self.assembler.assemble(
            resolved,
            groups=list(constraint.groups),
            platforms=expand_platforms(constraint.platforms),
        )
        entry.cached = cached
        return entry

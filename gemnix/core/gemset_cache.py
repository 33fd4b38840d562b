"""gemset 复用缓存

复用上一次生成的 gemset 中已计算好的哈希，避免重复下载/prefetch。

缓存策略:
  - git:  缓存描述符类型为 git 且 rev 与当前锁定 revision 相同
  - gem:  缓存描述符均为 gem，记录的平台集合与当前锁定的平台变体集合相同，且版本相同
  - path: 从不缓存（解析无开销）
残缺或格式不符的缓存条目视为未命中，而不是错误。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from gemnix.core.models import (
    PURE_PLATFORM,
    GitOrigin,
    LockedPackage,
    RegistryOrigin,
    RegistrySource,
    ResolvedVariant,
    SourceDescriptor,
    descriptor_from_dict,
)

logger = logging.getLogger(__name__)


class GemsetCache:
    """基于上次 gemset 内容的复用判定"""

    def __init__(self, previous: Mapping[str, Any] | None = None) -> None:
        self._previous: Mapping[str, Any] = previous or {}

    def lookup(self, packages: list[LockedPackage]) -> list[ResolvedVariant] | None:
        """命中时返回复用的变体列表（按锁定顺序），未命中返回 None"""
        if not packages:
            return None
        name = packages[0].name
        cached = self._previous.get(name)
        if not isinstance(cached, Mapping):
            return None

        try:
            origin = packages[0].origin
            if isinstance(origin, GitOrigin):
                variants = self._lookup_git(packages[0], origin, cached)
            elif isinstance(origin, RegistryOrigin):
                variants = self._lookup_registry(packages, cached)
            else:
                return None
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.debug("缓存条目 %s 格式不符，视为未命中: %s", name, e)
            return None

        if variants is not None:
            logger.info("缓存命中: %s", name)
        return variants

    @staticmethod
    def _lookup_git(
        package: LockedPackage, origin: GitOrigin, cached: Mapping[str, Any],
    ) -> list[ResolvedVariant] | None:
        source = cached.get("source")
        if not isinstance(source, Mapping) or source.get("type") != "git":
            return None
        if not source.get("rev") or source["rev"] != origin.revision:
            return None
        return [ResolvedVariant(package=package, descriptor=descriptor_from_dict(source))]

    @staticmethod
    def _lookup_registry(
        packages: list[LockedPackage], cached: Mapping[str, Any],
    ) -> list[ResolvedVariant] | None:
        raw = list(cached["targets"])
        if cached.get("source") is not None:
            raw.append(cached["source"])
        descriptors: list[SourceDescriptor] = [descriptor_from_dict(d) for d in raw]
        if not descriptors or not all(isinstance(d, RegistrySource) for d in descriptors):
            return None

        # 平台目标有增减时必须重新计算
        old_targets = sorted(d.target or PURE_PLATFORM for d in descriptors)
        new_targets = sorted(p.platform_token for p in packages)
        if old_targets != new_targets:
            return None
        if str(cached["version"]) != packages[0].version:
            return None

        by_target: dict[str, list[SourceDescriptor]] = {}
        for d in descriptors:
            by_target.setdefault(d.target or PURE_PLATFORM, []).append(d)
        return [
            ResolvedVariant(package=p, descriptor=by_target[p.platform_token].pop(0))
            for p in packages
        ]

"""来源解析器

按来源类型分发（单一分发点），为每个锁定变体构建 {version, descriptor}。
除未知来源类型外，单个包解析过程中的任何错误都在这里捕获并转为 ResolveFailure，
一个坏包不会阻塞其他包。
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from gemnix.core.exceptions import UnknownOriginError, ValidationError
from gemnix.core.fetch.hasher import HashFetcher
from gemnix.core.models import (
    GitOrigin,
    GitSource,
    LockedPackage,
    PathOrigin,
    PathSource,
    RegistryOrigin,
    RegistrySource,
    ResolvedVariant,
    ResolveFailure,
    SourceDescriptor,
    is_pure_platform,
)
from gemnix.core.platforms import GemPlatform

logger = logging.getLogger(__name__)


class SourceResolver:
    """LockedPackage -> ResolvedVariant"""

    def __init__(self, fetcher: HashFetcher) -> None:
        self.fetcher = fetcher

    def resolve(self, package: LockedPackage) -> ResolvedVariant:
        """解析单个变体；未知来源类型直接抛出，其余失败返回 ResolveFailure"""
        converter = self._converter_for(package)
        try:
            descriptor: SourceDescriptor | ResolveFailure = converter(package, package.origin)
        except Exception as e:
            code = getattr(e, "code", type(e).__name__)
            logger.error("跳过 %s: %s", package.name, e)
            logger.debug("%s 解析失败详情", package.name, exc_info=True)
            descriptor = ResolveFailure(name=package.name, reason=str(e), code=code)
        return ResolvedVariant(package=package, descriptor=descriptor)

    def _converter_for(self, package: LockedPackage) -> Callable[..., SourceDescriptor]:
        origin = package.origin
        if isinstance(origin, RegistryOrigin):
            return self.convert_registry
        if isinstance(origin, GitOrigin):
            return self.convert_git
        if isinstance(origin, PathOrigin):
            return self.convert_path
        raise UnknownOriginError(
            f"{package.name} 的来源类型未知: {type(origin).__name__}"
        )

    @staticmethod
    def convert_path(package: LockedPackage, origin: PathOrigin) -> PathSource:
        return PathSource(path=origin.path)

    def convert_git(self, package: LockedPackage, origin: GitOrigin) -> GitSource:
        if not origin.url or not origin.revision:
            raise ValidationError(f"{package.name} 的 git 来源缺少 remote 或 revision")
        sha256 = self.fetcher.revision_hash(origin.url, origin.revision, origin.submodules)
        return GitSource(
            url=origin.url,
            rev=origin.revision,
            sha256=sha256,
            fetch_submodules=origin.submodules,
        )

    def convert_registry(self, package: LockedPackage, origin: RegistryOrigin) -> RegistrySource:
        remotes = [r.rstrip("/") for r in origin.remotes]
        if not remotes:
            raise ValidationError(f"{package.name} 没有配置任何 gem 远程")

        result = self.fetcher.artifact_hash(package, remotes)
        platform = None if is_pure_platform(result.platform) else result.platform
        cpu = os_name = None
        if platform is not None:
            parsed = GemPlatform.parse(platform)
            cpu, os_name = parsed.cpu, parsed.os
        return RegistrySource(
            remotes=(result.remote,) if result.remote else tuple(remotes),
            sha256=result.sha256,
            target=platform,
            target_cpu=cpu,
            target_os=os_name,
        )

"""远程 spec 查询

锁文件里的平台串不一定是上游制品的精确平台（例如 universal-darwin 覆盖多个
cpu/os 组合），因此平台相关的 gem 需要先向远程查询同版本的全部平台，
挑出与锁定平台精确相等的那一个来拼制品 URL。
"""

from __future__ import annotations

import json
import logging

from gemnix.core.exceptions import PlatformResolutionError
from gemnix.core.fetch.downloader import Downloader
from gemnix.core.models import PURE_PLATFORM, LockedPackage
from gemnix.core.platforms import platform_equals

logger = logging.getLogger(__name__)


class RemoteSpecIndex:
    """基于 /api/v1/versions/<name>.json 的 spec 查询"""

    def __init__(self, downloader: Downloader) -> None:
        self.downloader = downloader

    def versions(self, remote: str, name: str) -> list[dict]:
        url = f"{remote}/api/v1/versions/{name}.json"
        try:
            data = json.loads(self.downloader.read(url))
        except json.JSONDecodeError as e:
            raise PlatformResolutionError(f"远程 spec 列表不是合法 JSON: {url}") from e
        if not isinstance(data, list):
            raise PlatformResolutionError(f"远程 spec 列表格式不符: {url}")
        return [v for v in data if isinstance(v, dict)]

    def exact_platform(self, remote: str, package: LockedPackage) -> str:
        """返回远程与锁定平台精确相等的平台串

        Raises:
            PlatformResolutionError: 远程没有兼容的 spec
        """
        locked = package.platform_token
        for entry in self.versions(remote, package.name):
            if str(entry.get("number", "")) != package.version:
                continue
            candidate = str(entry.get("platform") or PURE_PLATFORM)
            if platform_equals(locked, candidate):
                logger.debug("%s 远程平台: %s -> %s", package.name, locked, candidate)
                return candidate
        raise PlatformResolutionError(
            f"{remote} 上没有与 {locked} 兼容的 {package.name}-{package.version}"
        )

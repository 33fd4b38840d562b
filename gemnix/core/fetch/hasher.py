"""内容哈希获取器

策略: 本地优先
  1. 在本地 .gem 缓存目录中查找 name-version[-platform].gem → nix-prefetch-url file://
  2. 不存在则按声明顺序逐个尝试远程，首个成功的远程胜出
git 来源通过 nix-prefetch-git 计算，HOME 以显式 env 的方式隔离，不改动进程全局环境。
所有哈希最终经 nix-hash 规范化为 52 位 base32。
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

from gemnix.core.exceptions import ExecutionError, HashFetchError, PlatformResolutionError
from gemnix.core.fetch.downloader import Downloader
from gemnix.core.fetch.remote_specs import RemoteSpecIndex
from gemnix.core.models import SHA256_32, LockedPackage
from gemnix.core.platforms import platform_matches
from gemnix.utils.shell import CommandExecutor, LocalExecutor, run_cmd

logger = logging.getLogger(__name__)

NIX_PREFETCH_URL = "nix-prefetch-url"
NIX_PREFETCH_GIT = "nix-prefetch-git"
NIX_HASH = "nix-hash"

_TRAILING_JSON_RE = re.compile(r"(\{[^}]+\})\s*\Z")


@dataclass(frozen=True)
class ArtifactHash:
    """制品哈希结果；remote 为 None 表示来自本地缓存"""

    remote: str | None
    sha256: str
    platform: str | None


def extract_hash(output: str) -> str | None:
    m = SHA256_32.search(output)
    return m.group(0) if m else None


class HashFetcher:
    """为 gem 制品与 git 修订计算 sha256"""

    def __init__(
        self,
        downloader: Downloader,
        *,
        gem_cache_dirs: list[str] | None = None,
        executor: CommandExecutor | None = None,
        spec_index: RemoteSpecIndex | None = None,
        homeless_dir: str = "/homeless-shelter",
    ) -> None:
        self.downloader = downloader
        self.gem_cache_dirs = [Path(d) for d in (gem_cache_dirs or [])]
        self.executor = executor or LocalExecutor()
        self.spec_index = spec_index or RemoteSpecIndex(downloader)
        self.homeless_dir = homeless_dir

    # ------------------------------------------------------------------
    # gem 制品
    # ------------------------------------------------------------------

    def artifact_hash(self, package: LockedPackage, remotes: list[str]) -> ArtifactHash:
        """本地缓存优先，远程回退

        Raises:
            HashFetchError: 本地与所有远程均无法得到哈希
        """
        local = self.fetch_local_hash(package)
        if local is not None:
            sha256, platform = local
            return ArtifactHash(remote=None, sha256=sha256, platform=platform)
        return self.fetch_remotes_hash(package, remotes)

    def fetch_local_hash(self, package: LockedPackage) -> tuple[str, str | None] | None:
        """在本地 .gem 缓存中查找，返回 (sha256, 文件名中的平台段)"""
        name_version = f"{package.name}-{package.version}"
        pattern = f"{name_version}-*.gem" if package.is_platform_specific else f"{name_version}.gem"

        for cache_dir in self.gem_cache_dirs:
            if not cache_dir.is_dir():
                continue
            for path in sorted(cache_dir.glob(pattern)):
                platform: str | None = None
                if package.is_platform_specific:
                    platform = path.name[len(name_version) + 1:-len(".gem")]
                    if not platform_matches(package.platform_token, platform):
                        continue
                raw = extract_hash(self.prefetch_url(path.resolve().as_uri(), path.name))
                if raw:
                    logger.info("本地缓存命中: %s", path)
                    return self.format_hash(raw), platform
        return None

    def fetch_remotes_hash(self, package: LockedPackage, remotes: list[str]) -> ArtifactHash:
        errors: list[Exception] = []
        for remote in remotes:
            try:
                sha256, platform = self.fetch_remote_hash(package, remote)
            except (HashFetchError, ExecutionError) as e:
                logger.warning("  %s 从 %s 获取失败: %s", package.name, remote, e)
                errors.append(e)
                continue
            return ArtifactHash(remote=remote, sha256=sha256, platform=platform)
        detail = "; ".join(f"{r}: {e}" for r, e in zip(remotes, errors)) or "没有可用的远程"
        message = f"无法获取 {package.full_name} 的哈希 ({detail})"
        # 所有远程都找不到匹配平台时保留平台解析失败的错误码
        if errors and all(isinstance(e, PlatformResolutionError) for e in errors):
            raise PlatformResolutionError(message)
        raise HashFetchError(message)

    def fetch_remote_hash(self, package: LockedPackage, remote: str) -> tuple[str, str | None]:
        platform: str | None = None
        full_name = f"{package.name}-{package.version}"
        if package.is_platform_specific:
            platform = self.spec_index.exact_platform(remote, package)
            full_name = f"{full_name}-{platform}"

        url = f"{remote}/gems/{full_name}.gem"
        local = self.downloader.fetch(url)
        raw = extract_hash(self.prefetch_url(local.resolve().as_uri(), Path(url).name))
        if raw is None:
            raise HashFetchError(f"{NIX_PREFETCH_URL} 输出中没有哈希: {url}")
        return self.format_hash(raw), platform

    def prefetch_url(self, uri: str, name: str) -> str:
        """nix-prefetch-url，返回去掉首尾空白的输出"""
        return run_cmd(
            self.executor,
            [NIX_PREFETCH_URL, "--type", "sha256", "--name", name, uri],
            label=NIX_PREFETCH_URL,
        ).strip()

    def format_hash(self, raw: str) -> str:
        """把任意编码的 sha256 规范化为 52 位 base32

        Raises:
            HashFetchError: nix-hash 输出中没有 52 位小写字母数字串
        """
        output = run_cmd(
            self.executor,
            [NIX_HASH, "--type", "sha256", "--to-base32", raw],
            label=NIX_HASH,
        )
        sha256 = extract_hash(output)
        if sha256 is None:
            raise HashFetchError(f"{NIX_HASH} 输出不是 52 位 base32 哈希: {output.strip()!r}")
        return sha256

    # ------------------------------------------------------------------
    # git 修订
    # ------------------------------------------------------------------

    def revision_hash(self, url: str, rev: str, submodules: bool = False) -> str:
        """nix-prefetch-git，在隔离的 HOME 下运行，解析输出末尾的 JSON 对象"""
        args = [NIX_PREFETCH_GIT, "--url", url, "--rev", rev, "--hash", "sha256"]
        if submodules:
            args.append("--fetch-submodules")
        env = {**os.environ, "HOME": self.homeless_dir}
        output = run_cmd(self.executor, args, env=env, label=NIX_PREFETCH_GIT)

        m = _TRAILING_JSON_RE.search(output)
        if m is None:
            raise HashFetchError(f"{NIX_PREFETCH_GIT} 输出末尾没有 JSON: {url}@{rev}")
        try:
            raw = json.loads(m.group(1)).get("sha256")
        except json.JSONDecodeError as e:
            raise HashFetchError(f"{NIX_PREFETCH_GIT} 输出的 JSON 无法解析: {e}") from e
        if not raw:
            raise HashFetchError(f"{NIX_PREFETCH_GIT} 输出中没有 sha256: {url}@{rev}")
        logger.debug("%s => %s", raw, url)
        if SHA256_32.fullmatch(raw):
            return raw
        return self.format_hash(raw)

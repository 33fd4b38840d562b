"""集中配置管理

支持从 YAML 文件加载 + 编程式覆盖（CLI 参数）。
路径类默认值依赖环境变量，在 Config() 构造时求值。
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from gemnix.core.exceptions import ConfigError
from gemnix.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


def default_download_cache_dir() -> str:
    """下载缓存目录: $XDG_CACHE_HOME/gemnix 或 ~/.cache/gemnix"""
    base = os.environ.get("XDG_CACHE_HOME") or os.path.join(
        os.path.expanduser("~"), ".cache",
    )
    return os.path.join(base, "gemnix")


def default_gem_cache_dirs(gemfile: str) -> list[str]:
    """本地 .gem 缓存目录: vendor/cache + $GEM_HOME/cache + $GEM_PATH/*/cache"""
    dirs = [str(Path(gemfile).resolve().parent / "vendor" / "cache")]
    roots: list[str] = []
    if os.environ.get("GEM_HOME"):
        roots.append(os.environ["GEM_HOME"])
    roots.extend(p for p in os.environ.get("GEM_PATH", "").split(os.pathsep) if p)
    for root in roots:
        cache = os.path.join(root, "cache")
        if cache not in dirs:
            dirs.append(cache)
    return dirs


@dataclass
class Config:
    """转换配置"""

    # 输入输出
    gemfile: str = "Gemfile"
    lockfile: str = ""
    gemset: str = "gemset.nix"

    # 缓存
    download_cache_dir: str = field(default_factory=default_download_cache_dir)
    gem_cache_dirs: list[str] = field(default_factory=list)

    # bundler settings 所在目录（.bundle），为空时取 Gemfile 同级
    bundle_app_config: str = ""

    # 构建工具自身的伪依赖名
    build_tool: str = "bundler"

    # nix-prefetch-git 运行时的隔离 HOME
    homeless_dir: str = "/homeless-shelter"

    # 放不到字段里的配置项
    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.lockfile:
            self.lockfile = f"{self.gemfile}.lock"
        if not self.gem_cache_dirs:
            self.gem_cache_dirs = default_gem_cache_dirs(self.gemfile)
        if not self.bundle_app_config:
            self.bundle_app_config = str(Path(self.gemfile).resolve().parent / ".bundle")

    @classmethod
    def from_file(cls, path: str = "", **overrides: str) -> Config:
        """从 YAML 文件加载配置，非空的 overrides 覆盖文件中的同名字段"""
        data = load_yaml(path) if path else {}
        data.update({k: v for k, v in overrides.items() if v})
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        if "gem_cache_dirs" in matched and not isinstance(matched["gem_cache_dirs"], list):
            raise ConfigError(f"gem_cache_dirs 必须是列表: {path}")
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "", **overrides: str) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path, **overrides)
    if path:
        logger.info("配置已加载: %s", path)
    return _current

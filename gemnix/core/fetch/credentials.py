"""从 bundler settings 读取源站凭据

查找顺序与 bundler 一致: 项目 .bundle/config > 环境变量 BUNDLE_<HOST> > ~/.bundle/config。
配置值形如 "user:password"，只在内存中使用，不落盘。
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml

from gemnix.core.exceptions import ConfigError
from gemnix.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


def _load_settings(path: Path) -> dict:
    try:
        return load_yaml(path)
    except (yaml.YAMLError, ValueError) as e:
        raise ConfigError(f"bundler 配置文件无法解析: {path} ({e})") from e


def settings_key(host: str) -> str:
    """bundler 的配置键编码: '.' -> '__'，'-' -> '___'，转大写"""
    return "BUNDLE_" + host.replace(".", "__").replace("-", "___").upper()


class BundlerSettings:
    """bundler 配置读取（只读，懒加载）"""

    def __init__(
        self,
        app_config_dir: str | Path,
        user_config: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.app_config = Path(app_config_dir) / "config"
        if user_config is None:
            user_config = Path(os.path.expanduser("~")) / ".bundle" / "config"
        self.user_config = Path(user_config)
        self._environ = os.environ if environ is None else environ
        self._local: dict | None = None
        self._global: dict | None = None

    def __getitem__(self, host: str) -> str | None:
        key = settings_key(host)
        if self._local is None:
            self._local = _load_settings(self.app_config)
        if self._global is None:
            self._global = _load_settings(self.user_config)
        for source in (self._local, self._environ, self._global):
            value = source.get(key)
            if value:
                return str(value)
        return None

    def credentials_for(self, host: str) -> tuple[str, str] | None:
        """返回 (user, password)，未配置时返回 None"""
        value = self[host]
        if value is None:
            return None
        user, _, password = value.partition(":")
        logger.debug("使用 bundler settings 中 %s 的凭据", host)
        return user, password

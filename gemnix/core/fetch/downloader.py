"""制品下载器

- 支持 HTTP Basic 认证（URL 内嵌凭据或 bundler settings）
- 401/403 时输出点名源站的补救提示
- 下载结果按 URL 编码后的文件名缓存在本地，重复运行不再访问网络
"""

from __future__ import annotations

import base64
import logging
import urllib.error
import urllib.request
from pathlib import Path
from urllib.parse import urlsplit

from gemnix.core.exceptions import CredentialDeniedError, HashFetchError
from gemnix.core.fetch.credentials import BundlerSettings
from gemnix.utils.net import cache_key, split_userinfo, validate_url_scheme
from gemnix.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 120


class Downloader:
    """带认证与磁盘缓存的下载器"""

    def __init__(self, cache_dir: str | Path, settings: BundlerSettings | None = None) -> None:
        self.cache_dir = Path(cache_dir)
        self.settings = settings

    def cached_path(self, url: str) -> Path:
        # 凭据不进入文件名
        return self.cache_dir / cache_key(split_userinfo(url)[0])

    def fetch(self, url: str) -> Path:
        """下载到缓存并返回本地路径；缓存中已有非空文件时直接返回"""
        dest = self.cached_path(url)
        if dest.is_file() and dest.stat().st_size > 0:
            logger.debug("  缓存命中: %s", dest)
            return dest

        logger.info("下载 %s", url)
        payload = self.read(url)
        if not payload:
            raise HashFetchError(f"下载内容为空: {url}")
        atomic_write(dest, payload)
        return dest

    def read(self, url: str) -> bytes:
        """读取 URL 全部内容（不缓存）"""
        request = self._request(url)
        host = urlsplit(request.full_url).hostname or ""
        try:
            with urllib.request.urlopen(request, timeout=DOWNLOAD_TIMEOUT) as resp:  # nosec B310
                return resp.read()
        except urllib.error.HTTPError as e:
            if e.code in (401, 403):
                err = CredentialDeniedError(host, e.code)
                logger.error("%s", err)
                raise err from e
            raise HashFetchError(f"下载失败: {request.full_url} - HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            raise HashFetchError(f"下载失败: {request.full_url} - {e}") from e

    def _request(self, url: str) -> urllib.request.Request:
        plain_url, user, password = split_userinfo(url)
        validate_url_scheme(plain_url, context="gem download")
        if user is None and self.settings is not None:
            creds = self.settings.credentials_for(urlsplit(plain_url).hostname or "")
            if creds:
                user, password = creds

        request = urllib.request.Request(plain_url)
        if user is not None:
            token = base64.b64encode(f"{user}:{password or ''}".encode()).decode("ascii")
            request.add_header("Authorization", f"Basic {token}")
        return request

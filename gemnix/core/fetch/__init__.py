"""哈希获取模块

- hasher.py: HashFetcher（本地缓存优先 + 远程回退，git 修订哈希）
- downloader.py: 带认证与磁盘缓存的下载
- remote_specs.py: 平台相关 gem 的远程精确平台查询
- credentials.py: bundler settings 中的源站凭据
"""

from gemnix.core.fetch.credentials import BundlerSettings
from gemnix.core.fetch.downloader import Downloader
from gemnix.core.fetch.hasher import ArtifactHash, HashFetcher
from gemnix.core.fetch.remote_specs import RemoteSpecIndex

__all__ = [
    "ArtifactHash",
    "BundlerSettings",
    "Downloader",
    "HashFetcher",
    "RemoteSpecIndex",
]

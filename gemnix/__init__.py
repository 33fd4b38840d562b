"""gemnix - 将 Gemfile.lock 转换为内容寻址的 gemset.nix"""

__version__ = "0.4.0"

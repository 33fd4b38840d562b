"""gemnix 命令行接口

CLI 按功能拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os

import click

from gemnix import __version__
from gemnix.utils.logger import setup_logging


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """gemnix - 将 Gemfile.lock 转换为 gemset.nix"""
    setup_logging(
        level=os.getenv("GEMNIX_LOG_LEVEL", "INFO"),
        json_output=os.getenv("GEMNIX_LOG_JSON", "") == "1",
    )


# 注册各子命令
from gemnix.cli.cmd_constraints import register as _reg_constraints  # noqa: E402
from gemnix.cli.cmd_convert import register as _reg_convert  # noqa: E402

_reg_convert(main)
_reg_constraints(main)

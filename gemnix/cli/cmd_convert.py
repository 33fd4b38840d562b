"""CLI - gemset 转换命令"""

from __future__ import annotations

import logging

import click

from gemnix.core.config import init_config
from gemnix.core.converter import GemsetConverter
from gemnix.core.exceptions import GemnixError
from gemnix.lock.nixer import write_gemset
from gemnix.utils.shell import get_executor


def register(group: click.Group) -> None:
    group.add_command(convert)


@click.command()
@click.option("--gemfile", default=None, help="Gemfile 路径（默认 ./Gemfile）")
@click.option("--lockfile", default=None, help="Gemfile.lock 路径（默认 <gemfile>.lock）")
@click.option("--gemset", default=None, help="输出的 gemset.nix 路径，已存在时复用其中的哈希")
@click.option("--config", "config_path", default="", help="YAML 配置文件")
@click.option("--cache-dir", default=None, help="下载缓存目录")
@click.option("-q", "--quiet", is_flag=True, help="只输出警告与错误")
@click.option("-v", "--verbose", is_flag=True, help="输出调试日志")
def convert(
    gemfile: str | None,
    lockfile: str | None,
    gemset: str | None,
    config_path: str,
    cache_dir: str | None,
    quiet: bool,
    verbose: bool,
) -> None:
    """生成 gemset.nix（本地缓存优先，不存在时远程下载计算哈希）"""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif quiet:
        logging.getLogger().setLevel(logging.WARNING)

    try:
        cfg = init_config(
            config_path,
            gemfile=gemfile,
            lockfile=lockfile,
            gemset=gemset,
            download_cache_dir=cache_dir,
        )
        report = GemsetConverter.from_config(cfg, executor=get_executor()).convert()
    except GemnixError as e:
        raise click.ClickException(f"[{e.code}] {e}") from e

    out = write_gemset(cfg.gemset, report.to_gemset())
    click.echo(
        f"已写入 {out}: {len(report.entries)} 个包, "
        f"{len(report.cached)} 个复用缓存, {len(report.failures)} 个失败"
    )
    for failure in report.failures:
        click.echo(f"  [FAILED] {failure.name}: {failure.reason}", err=True)

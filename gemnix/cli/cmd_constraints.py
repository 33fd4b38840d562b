"""CLI - 约束闭包查看命令"""

from __future__ import annotations

import click

from gemnix.core.closure import DependencyClosureBuilder
from gemnix.core.config import init_config
from gemnix.core.exceptions import GemnixError
from gemnix.lock.gemfile import manifest_constraints
from gemnix.lock.lockfile import read_lockfile
from gemnix.utils.yaml_io import dump_yaml


def register(group: click.Group) -> None:
    group.add_command(constraints)


@click.command()
@click.option("--gemfile", default=None, help="Gemfile 路径（默认 ./Gemfile）")
@click.option("--lockfile", default=None, help="Gemfile.lock 路径（默认 <gemfile>.lock）")
@click.option("--config", "config_path", default="", help="YAML 配置文件")
def constraints(gemfile: str | None, lockfile: str | None, config_path: str) -> None:
    """以 YAML 输出每个包的有效 groups / platforms"""
    try:
        cfg = init_config(config_path, gemfile=gemfile, lockfile=lockfile)
        lock = read_lockfile(cfg.lockfile)
        declared = manifest_constraints(lock.dependencies, cfg.gemfile)
        closure = DependencyClosureBuilder(
            build_tool=cfg.build_tool, lockfile=cfg.lockfile,
        ).build(declared, lock.packages)
    except GemnixError as e:
        raise click.ClickException(f"[{e.code}] {e}") from e

    data = {
        name: {"groups": list(c.groups), "platforms": list(c.platforms)}
        for name, c in sorted(closure.items())
    }
    click.echo(dump_yaml(data), nl=False)

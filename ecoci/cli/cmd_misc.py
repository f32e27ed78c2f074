"""CLI — 杂项命令"""

from __future__ import annotations

import click

from ecoci.cli import handle_errors


def register(group: click.Group) -> None:
    group.add_command(list_plugins)


@click.command(name="list")
@handle_errors
def list_plugins() -> None:
    """列出已注册的测试套件和构建定义"""
    from ecoci.core.config import get_config
    from ecoci.plugins import PluginRegistry, load_plugins

    registry = PluginRegistry()
    load_plugins(get_config().plugins, registry)
    click.echo("测试套件:")
    for name in registry.suite_names():
        click.echo(f"  {name}")
    click.echo("构建定义:")
    for definition in registry.builds():
        packages = ", ".join(f"{k} -> {v}" for k, v in definition.packages.items())
        click.echo(f"  {definition.name:20s} {packages}")

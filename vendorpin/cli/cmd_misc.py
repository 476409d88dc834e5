"""CLI — 杂项命令"""

from __future__ import annotations

import click

from vendorpin import __version__


def register(group: click.Group) -> None:
    group.add_command(version)


@click.command()
def version() -> None:
    """显示当前版本"""
    click.echo(f"vendorpin version: {__version__}")

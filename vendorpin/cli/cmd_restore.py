"""CLI — restore 命令"""

from __future__ import annotations

import click

from vendorpin.cli import _workflow, handle_errors


def register(group: click.Group) -> None:
    group.add_command(restore)


@click.command()
@click.pass_context
@handle_errors
def restore(ctx: click.Context) -> None:
    """把 workspace 中的依赖切换到清单锁定的版本"""
    from vendorpin.services.restore import RestoreService

    done = RestoreService(_workflow(ctx)).restore()
    click.echo(f"已恢复 {len(done)} 个依赖")

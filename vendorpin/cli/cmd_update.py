"""CLI — update 命令"""

from __future__ import annotations

import click

from vendorpin.cli import _workflow, handle_errors


def register(group: click.Group) -> None:
    group.add_command(update)


@click.command()
@click.argument("packages", nargs=-1)
@click.pass_context
@handle_errors
def update(ctx: click.Context, packages: tuple[str, ...]) -> None:
    """把选中依赖更新到 workspace 中当前检出的版本"""
    from vendorpin.services.update import UpdateService

    for dep in UpdateService(_workflow(ctx)).update(packages):
        click.echo(f"{dep.import_path} {dep.rev}")

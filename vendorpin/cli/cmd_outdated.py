"""CLI — outdated 命令"""

from __future__ import annotations

import sys

import click

from vendorpin.cli import _workflow, handle_errors


def register(group: click.Group) -> None:
    group.add_command(outdated)


@click.command()
@click.argument("packages", nargs=-1)
@click.pass_context
@handle_errors
def outdated(ctx: click.Context, packages: tuple[str, ...]) -> None:
    """列出版本不一致的依赖；指定包时显示其锁定版本之后的提交"""
    from vendorpin.services.outdated import OutdatedService

    svc = OutdatedService(_workflow(ctx))
    if packages:
        for path, log in svc.details(packages).items():
            click.echo(f"== {path}")
            click.echo(log.rstrip())
        return

    report = svc.outdated()
    for path in report.mismatched:
        click.echo(path)
    if not report.ok:
        sys.exit(1)

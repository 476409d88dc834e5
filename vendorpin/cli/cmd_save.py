"""CLI — save 命令"""

from __future__ import annotations

import click

from vendorpin.cli import _workflow, handle_errors


def register(group: click.Group) -> None:
    group.add_command(save)


@click.command()
@click.option("--tags", default=None, help="构建标签（覆盖配置中的 build_tags）")
@click.argument("packages", nargs=-1)
@click.pass_context
@handle_errors
def save(ctx: click.Context, tags: str | None, packages: tuple[str, ...]) -> None:
    """列出依赖并复制源码到 vendor 目录"""
    from vendorpin.services.save import SaveService

    wf = _workflow(ctx)
    wf.config = wf.config.with_overrides(build_tags=tags)
    manifest = SaveService(wf).save(packages)
    click.echo(f"已保存 {len(manifest.deps)} 个依赖")

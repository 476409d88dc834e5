"""vendorpin 命令行接口

CLI 按命令拆分为子模块，每个模块注册自己的命令到 main group。
工作流上下文在 main 中构造一次，通过 click 的 ctx.obj 传给子命令。
"""

from __future__ import annotations

import functools
import logging
import os
import sys
from typing import Any, Callable

import click

from vendorpin import __version__
from vendorpin.core.config import Config
from vendorpin.core.exceptions import VendorError
from vendorpin.services.context import WorkflowContext
from vendorpin.utils.logger import setup_logging

logger = logging.getLogger("vendorpin")


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """把 VendorError 转为日志输出 + 退出码 1"""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except VendorError as e:
            logger.error("%s", e)
            for item in getattr(e, "details", []):
                logger.error("  %s", item)
            sys.exit(1)

    return wrapper


def _workflow(ctx: click.Context) -> WorkflowContext:
    return ctx.obj["workflow"]


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=".vendorpin.yml", help="配置文件路径")
@click.option("-v", "--verbose", is_flag=True, help="输出调试日志")
@click.pass_context
@handle_errors
def main(ctx: click.Context, config_path: str, verbose: bool) -> None:
    """vendorpin - 依赖版本锁定与源码 vendor 工具"""
    level = "DEBUG" if verbose else os.getenv("VENDORPIN_LOG_LEVEL", "INFO")
    setup_logging(
        level=level,
        json_output=os.getenv("VENDORPIN_LOG_JSON", "") == "1",
    )
    ctx.ensure_object(dict)
    config = Config.from_file(config_path)
    ctx.obj["workflow"] = WorkflowContext.create(
        config, project_root=".", executor=ctx.obj.get("executor"),
    )


# 注册各子命令
from vendorpin.cli.cmd_save import register as _reg_save  # noqa: E402
from vendorpin.cli.cmd_restore import register as _reg_restore  # noqa: E402
from vendorpin.cli.cmd_update import register as _reg_update  # noqa: E402
from vendorpin.cli.cmd_outdated import register as _reg_outdated  # noqa: E402
from vendorpin.cli.cmd_misc import register as _reg_misc  # noqa: E402

_reg_save(main)
_reg_restore(main)
_reg_update(main)
_reg_outdated(main)
_reg_misc(main)

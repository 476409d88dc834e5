"""update 编排 — 把选中依赖更新到 workspace 中当前检出的版本

模式语法与工具链一致: '...' 匹配任意字符串，'foo/...' 同时匹配 foo 本身。
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Sequence

from vendorpin.core.exceptions import (
    DependencyError,
    DirtyWorkingTree,
    TransportError,
    ValidationError,
    VendorError,
)
from vendorpin.core.loader import load_packages
from vendorpin.core.manifest import ManifestFormat, read_manifest, write_manifest
from vendorpin.core.models import Dependency
from vendorpin.core.resolver import src_root
from vendorpin.core.snapshot import copy_src
from vendorpin.services.context import WorkflowContext

logger = logging.getLogger(__name__)


def match_pattern(pattern: str) -> Callable[[str], bool]:
    """返回判断 import path 是否匹配 pattern 的函数"""
    expr = re.escape(pattern).replace(r"\.\.\.", ".*")
    if expr.endswith("/.*"):
        expr = expr[: -len("/.*")] + "(/.*)?"
    reg = re.compile(expr)
    return lambda name: reg.fullmatch(name) is not None


def mark_matches(pattern: str, deps: Sequence[Dependency]) -> bool:
    """标记所有匹配 pattern 的依赖，返回是否有匹配"""
    match = match_pattern(pattern)
    matched = False
    for dep in deps:
        if match(dep.import_path):
            dep.matched = True
            matched = True
    return matched


class UpdateService:
    """依赖更新服务"""

    def __init__(self, ctx: WorkflowContext) -> None:
        self.ctx = ctx

    def update(self, patterns: Sequence[str] = ()) -> list[Dependency]:
        """更新匹配的依赖，返回已更新（并已复制）的依赖

        成功识别的依赖会写回清单并复制源码；其余失败在最后汇总抛出。

        异常:
            ValidationError: 清单不存在
            DependencyError: 没有任何依赖匹配，或部分依赖更新失败
            TransportError: 子进程无法启动
        """
        ctx = self.ctx
        location = ctx.locate_manifest()
        if not location.exists:
            raise ValidationError(f"清单不存在: {location.path}")
        manifest = read_manifest(location)

        for pattern in patterns or ["."]:
            if not mark_matches(pattern, manifest.deps):
                logger.warning("not in manifest: %s", pattern)

        updated, errors = self._reidentify(manifest.deps)
        if updated:
            write_manifest(location.path, manifest, location.format)
            if location.format is ManifestFormat.CURRENT:
                copy_src(ctx.vendor_root, updated)
        if errors:
            raise DependencyError("error loading dependencies", details=errors)
        logger.info("update 完成: %d 个依赖", len(updated))
        return updated

    def _reidentify(self, deps: Sequence[Dependency]) -> tuple[list[Dependency], list[str]]:
        paths = [d.import_path for d in deps if d.matched]
        if not paths:
            raise DependencyError("no packages can be updated")

        ctx = self.ctx
        by_path = {d.import_path: d for d in deps}
        updated: list[Dependency] = []
        errors: list[str] = []
        for pkg in load_packages(paths, config=ctx.config, executor=ctx.executor, cwd=ctx.cwd):
            dep = by_path.get(pkg.import_path)
            if pkg.error or dep is None:
                logger.error("%s: %s", pkg.import_path, pkg.error or "不在清单中")
                errors.append(pkg.import_path or pkg.error)
                continue
            if pkg.standard:
                logger.error("%s: 标准库包不能锁定", pkg.import_path)
                errors.append(pkg.import_path)
                continue
            try:
                vcs, root = ctx.registry.from_dir(pkg.dir, src_root(pkg))
                rev = vcs.identify(pkg.dir)
                if vcs.is_dirty(pkg.dir, rev):
                    raise DirtyWorkingTree(pkg.import_path, pkg.dir)
                comment = vcs.describe(pkg.dir, rev)
            except TransportError:
                raise
            except VendorError as e:
                logger.error("%s", e)
                errors.append(pkg.import_path)
                continue

            if rev != dep.rev:
                logger.info("%s: %s -> %s", dep.import_path, dep.rev or "-", rev)
            dep.rev = rev
            dep.comment = comment
            dep.dir = pkg.dir
            dep.ws = pkg.root
            dep.root = root
            dep.vcs = vcs
            updated.append(dep)
        return updated, errors

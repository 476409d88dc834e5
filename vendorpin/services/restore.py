"""restore 编排 — 把 workspace 中的每个依赖切换到清单锁定的版本

单个依赖失败不影响其余依赖，全部处理完后统一报告。
"""

from __future__ import annotations

import logging

from vendorpin.core.exceptions import (
    DependencyError,
    MissingRevision,
    RestoreError,
    TransportError,
    ValidationError,
    VendorError,
)
from vendorpin.core.loader import load_packages
from vendorpin.core.manifest import find_manifest, read_manifest
from vendorpin.core.models import Dependency
from vendorpin.core.resolver import src_root
from vendorpin.services.context import WorkflowContext

logger = logging.getLogger(__name__)


class RestoreService:
    """依赖恢复服务"""

    def __init__(self, ctx: WorkflowContext) -> None:
        self.ctx = ctx

    def restore(self) -> list[Dependency]:
        """恢复清单中所有依赖，返回成功处理的依赖

        异常:
            ValidationError: 当前目录及上级目录都没有清单
            TransportError: 子进程无法启动
            RestoreError: 有依赖恢复失败（details 列出 import path）
        """
        location = find_manifest(self.ctx.project_root, self.ctx.config)
        if location is None:
            raise ValidationError("未找到清单（当前目录及所有上级目录）")
        manifest = read_manifest(location)

        done: list[Dependency] = []
        failed: list[str] = []
        total = len(manifest.deps)
        for i, dep in enumerate(manifest.deps, 1):
            logger.info("restore: 处理 %d/%d %s", i, total, dep.import_path)
            try:
                self.restore_one(dep)
            except TransportError:
                raise
            except VendorError as e:
                logger.error("restore: error: %s", e)
                failed.append(dep.import_path)
                continue
            done.append(dep)

        if failed:
            raise RestoreError(f"{len(failed)} 个依赖恢复失败", details=failed)
        return done

    def restore_one(self, dep: Dependency) -> None:
        """拉取单个依赖到 workspace 并切换到锁定版本"""
        ctx = self.ctx
        cfg = ctx.config
        rc = ctx.executor.run_inherited(
            [cfg.go_cmd, "get", "-d", dep.import_path], cwd=ctx.cwd,
        )
        if rc != 0:
            raise DependencyError(f"{dep.import_path}: go get 失败 (rc={rc})")

        pkgs = load_packages([dep.import_path], config=cfg, executor=ctx.executor, cwd=ctx.cwd)
        if not pkgs or pkgs[0].error:
            reason = pkgs[0].error if pkgs else "无元数据"
            raise DependencyError(f"{dep.import_path}: {reason}")
        pkg = pkgs[0]

        vcs, root = ctx.registry.from_dir(pkg.dir, src_root(pkg))
        dep.dir, dep.ws, dep.root, dep.vcs = pkg.dir, pkg.root, root, vcs
        if not vcs.exists(pkg.dir, dep.rev):
            vcs.download(pkg.dir)
            if not vcs.exists(pkg.dir, dep.rev):
                raise MissingRevision(dep.import_path, dep.rev)
        vcs.rev_sync(pkg.dir, dep.rev)

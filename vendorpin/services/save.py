"""save 编排 — 解析依赖、锁定版本、复制源码、写入清单

已在清单中的依赖保持原版本不变；要升级某个依赖请使用 update。
从旧格式迁移时要求 workspace 中每个依赖都处于清单记录的版本，
否则提示先执行 restore，不做部分复制。
"""

from __future__ import annotations

import copy
import logging
from typing import Sequence

from vendorpin.core.carrier import carry_versions, eq_deps, sub_deps
from vendorpin.core.exceptions import DependencyError, NeedRestoreError
from vendorpin.core.loader import load_packages, load_packages_all, toolchain_version
from vendorpin.core.manifest import ManifestFormat, read_manifest, write_manifest
from vendorpin.core.models import Manifest
from vendorpin.core.resolver import DependencyResolver
from vendorpin.core.snapshot import copy_src, remove_src, write_readme, write_vcs_ignore
from vendorpin.services.context import WorkflowContext

logger = logging.getLogger(__name__)

NEED_RESTORE = """\
mismatched versions while migrating

It looks like you are switching from the old manifest format.
The old format is just a file; it doesn't contain source code.
For this migration the pinned version of each dependency must be
checked out in the workspace, so that the source code is available
to copy.

To fix this, run restore first."""


class SaveService:
    """依赖保存服务"""

    def __init__(self, ctx: WorkflowContext) -> None:
        self.ctx = ctx

    def save(self, packages: Sequence[str] = ()) -> Manifest:
        """执行 save 流程，返回写入的新清单

        异常:
            TransportError: 工具链子进程失败
            DependencyError: 包或依赖加载失败（汇总）
            RevisionConflict: 同一仓库内版本冲突
            NeedRestoreError: 旧格式迁移时 workspace 版本不一致
            SnapshotError: 源码复制/删除失败
        """
        ctx = self.ctx
        cfg = ctx.config

        dot = load_packages(["."], config=cfg, executor=ctx.executor, cwd=ctx.cwd)
        if not dot or dot[0].error:
            reason = dot[0].error if dot else "no package in current directory"
            raise DependencyError(f"无法加载当前包: {reason}")
        project = dot[0].import_path

        version = toolchain_version(config=cfg, executor=ctx.executor)
        location = ctx.locate_manifest()
        old = read_manifest(location)
        migrating = location.exists and location.format is ManifestFormat.LEGACY

        new = Manifest(
            import_path=project,
            toolchain_version=version,
            packages=list(packages) or None,
        )
        targets = list(packages) or ["."]
        pkgs = load_packages_all(
            targets, config=cfg, executor=ctx.executor,
            tags=cfg.build_tags, cwd=ctx.cwd,
        )
        resolver = DependencyResolver(cfg, ctx.executor, ctx.registry, cwd=ctx.cwd)
        new.deps = resolver.resolve(pkgs, project)
        on_disk = [copy.copy(d) for d in new.deps]

        carry_versions(old, new)
        if migrating:
            if not eq_deps(new.deps, on_disk):
                raise NeedRestoreError(NEED_RESTORE)
            old = Manifest()
            location.path.unlink()
            logger.info("已移除旧格式清单: %s", location.path)

        write_readme(ctx.manifest_dir)
        write_manifest(ctx.project_root / cfg.manifest_path, new)

        vendor = ctx.vendor_root
        remove_src(vendor, sub_deps(old.deps, new.deps))
        copy_src(vendor, sub_deps(new.deps, old.deps))
        if not cfg.vendor_experiment:
            write_vcs_ignore(vendor.parent)

        logger.info("save 完成: %d 个依赖", len(new.deps))
        return new

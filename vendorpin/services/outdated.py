"""outdated 编排 — 检查 workspace 检出版本与清单是否一致

只读，不修改清单和 workspace。判定规则: 锁定版本在本地仓库中不存在，
或与当前检出版本不同，均视为不一致。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from vendorpin.core.exceptions import (
    DependencyError,
    NotInManifest,
    TransportError,
    VendorError,
)
from vendorpin.core.loader import load_packages
from vendorpin.core.manifest import find_manifest, read_manifest
from vendorpin.core.models import Manifest, ResolvedPackage
from vendorpin.core.resolver import src_root
from vendorpin.services.context import WorkflowContext

logger = logging.getLogger(__name__)


@dataclass
class OutdatedReport:
    """检查结果"""

    mismatched: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.mismatched and not self.errors


class OutdatedService:
    """依赖版本一致性检查服务"""

    def __init__(self, ctx: WorkflowContext) -> None:
        self.ctx = ctx

    def _manifest(self) -> Manifest:
        location = find_manifest(self.ctx.project_root, self.ctx.config)
        if location is None:
            return Manifest()
        return read_manifest(location)

    def _load(self, paths: Sequence[str]) -> dict[str, ResolvedPackage]:
        ctx = self.ctx
        pkgs = load_packages(paths, config=ctx.config, executor=ctx.executor, cwd=ctx.cwd)
        return {p.import_path: p for p in pkgs}

    def outdated(self) -> OutdatedReport:
        manifest = self._manifest()
        pkgs = self._load([d.import_path for d in manifest.deps])
        report = OutdatedReport()

        for dep in manifest.deps:
            pkg = pkgs.get(dep.import_path)
            if pkg is None or pkg.error:
                report.errors[dep.import_path] = pkg.error if pkg else "未找到包"
                continue
            try:
                vcs, _ = self.ctx.registry.from_dir(pkg.dir, src_root(pkg))
                if not vcs.exists(pkg.dir, dep.rev):
                    logger.debug("%s: 版本 %s 不存在", dep.import_path, dep.rev)
                    report.mismatched.append(dep.import_path)
                    continue
                current = vcs.identify(pkg.dir)
            except TransportError:
                raise
            except VendorError as e:
                report.errors[dep.import_path] = str(e)
                continue
            if current != dep.rev:
                logger.debug("%s: 当前 %s, 锁定 %s", dep.import_path, current, dep.rev)
                report.mismatched.append(dep.import_path)

        for path, err in report.errors.items():
            logger.error("%s: %s", path, err)
        return report

    def details(self, paths: Sequence[str]) -> dict[str, str]:
        """返回每个依赖自锁定版本以来的提交记录

        异常:
            DependencyError: 有包不在清单中或无法读取记录
        """
        manifest = self._manifest()
        pkgs = self._load(paths)
        logs: dict[str, str] = {}
        errors: list[str] = []
        for path in paths:
            dep = manifest.find(path)
            pkg = pkgs.get(path)
            try:
                if dep is None:
                    raise NotInManifest(path)
                if pkg is None or pkg.error:
                    raise DependencyError(f"{path}: {pkg.error if pkg else '未找到包'}")
                vcs, _ = self.ctx.registry.from_dir(pkg.dir, src_root(pkg))
                logs[path] = vcs.log(pkg.dir, dep.rev)
            except TransportError:
                raise
            except VendorError as e:
                logger.error("%s", e)
                errors.append(path)
        if errors:
            raise DependencyError("无法获取提交记录", details=errors)
        return logs

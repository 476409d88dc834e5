"""依赖解析: 从项目包元数据推导出需要锁定的第三方依赖列表

流程:
  1. 收集项目包的 deps 以及测试 import（测试包的 deps 一并展开）
  2. 去掉 vendor 限定前缀，排序去重后一次性加载元数据
  3. 跳过标准库、项目自身仓库内的包、已收录包的子包
  4. 对其余包识别版本控制、取当前版本和描述，工作目录有改动则报错

逐依赖的错误汇总后以 DependencyError 统一抛出。
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Iterable, Sequence

from vendorpin.core.exceptions import (
    DependencyError,
    DirtyWorkingTree,
    UnrecognizedRepository,
    VcsCommandError,
)
from vendorpin.core.loader import load_packages
from vendorpin.core.models import Dependency, ResolvedPackage

if TYPE_CHECKING:
    from vendorpin.core.config import Config
    from vendorpin.core.vcs import VcsRegistry
    from vendorpin.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)

_VENDOR_MARKERS = ("/vendor/", "/Godeps/_workspace/src/")


def unqualify(import_path: str) -> str:
    """去掉 vendor 目录限定前缀: a/vendor/b/c → b/c"""
    for marker in _VENDOR_MARKERS:
        i = import_path.rfind(marker)
        if i >= 0:
            return import_path[i + len(marker):]
    return import_path


def contains_path_prefix(prefixes: Iterable[str], path: str) -> bool:
    """path 是否等于某个前缀，或位于某个前缀之下"""
    return any(path == p or path.startswith(p + "/") for p in prefixes)


def src_root(pkg: ResolvedPackage) -> str:
    return os.path.join(pkg.root, "src")


class DependencyResolver:
    """包元数据 → 依赖列表"""

    def __init__(
        self,
        config: Config,
        executor: CommandExecutor,
        registry: VcsRegistry,
        cwd: str = ".",
    ) -> None:
        self.config = config
        self.executor = executor
        self.registry = registry
        self.cwd = cwd

    def _load(self, paths: Sequence[str]) -> list[ResolvedPackage]:
        return load_packages(paths, config=self.config, executor=self.executor, cwd=self.cwd)

    def resolve(self, packages: Sequence[ResolvedPackage], project_path: str) -> list[Dependency]:
        """返回按 import path 排序的依赖列表

        异常:
            DependencyError: 包加载失败、仓库无法识别或工作目录有改动
        """
        seen: list[str] = [project_path]
        wanted: set[str] = set()
        errors: list[str] = []
        test_imports: set[str] = set()

        for pkg in packages:
            if pkg.standard:
                continue
            if pkg.error:
                logger.error("%s", pkg.error)
                errors.append(f"{pkg.import_path or '?'}: {pkg.error}")
                continue
            try:
                _, reporoot = self.registry.from_dir(pkg.dir, src_root(pkg))
            except UnrecognizedRepository as e:
                logger.error("%s", e)
                errors.append(f"{pkg.import_path}: {e}")
                continue
            seen.append(reporoot)
            wanted.update(pkg.deps)
            test_imports.update(pkg.test_imports)
            test_imports.update(pkg.xtest_imports)

        if errors:
            raise DependencyError("error loading packages", details=errors)

        for tp in self._load(sorted(test_imports)):
            if tp.error:
                logger.error("%s", tp.error)
                errors.append(f"{tp.import_path or '?'}: {tp.error}")
                continue
            wanted.add(tp.import_path)
            wanted.update(tp.deps)

        paths = sorted({unqualify(p) for p in wanted})
        deps: list[Dependency] = []
        for pkg in self._load(paths):
            if pkg.error:
                logger.error("%s", pkg.error)
                errors.append(f"{pkg.import_path or '?'}: {pkg.error}")
                continue
            if pkg.standard or contains_path_prefix(seen, pkg.import_path):
                continue
            seen.append(pkg.import_path)
            try:
                deps.append(self._identify(pkg))
            except (UnrecognizedRepository, DirtyWorkingTree, VcsCommandError) as e:
                logger.error("%s", e)
                errors.append(f"{pkg.import_path}: {e}")

        if errors:
            raise DependencyError("error loading dependencies", details=errors)
        return deps

    def _identify(self, pkg: ResolvedPackage) -> Dependency:
        try:
            vcs, reporoot = self.registry.from_dir(pkg.dir, src_root(pkg))
        except UnrecognizedRepository as e:
            raise UnrecognizedRepository(pkg.dir, pkg.import_path) from e
        rev = vcs.identify(pkg.dir)
        if vcs.is_dirty(pkg.dir, rev):
            raise DirtyWorkingTree(pkg.import_path, pkg.dir)
        comment = vcs.describe(pkg.dir, rev)
        logger.debug("依赖 %s @ %s (%s)", pkg.import_path, rev, vcs.name)
        return Dependency(
            import_path=pkg.import_path,
            rev=rev,
            comment=comment,
            root=reporoot,
            dir=pkg.dir,
            ws=pkg.root,
            vcs=vcs,
        )

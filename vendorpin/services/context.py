"""工作流上下文 — 各编排服务共享的依赖集合

Config、命令执行器、版本控制注册表和项目根目录在 CLI 入口处构造一次，
显式传给每个服务，不使用全局单例。同一上下文内的服务共享 VcsRegistry
缓存，同一仓库只探测一次。

用法:
    ctx = WorkflowContext.create(Config.from_file(), project_root=".")
    SaveService(ctx).save()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from vendorpin.core.config import Config
from vendorpin.core.manifest import ManifestLocation, detect_format
from vendorpin.core.vcs import VcsRegistry
from vendorpin.utils.shell import CommandExecutor, LocalExecutor

logger = logging.getLogger(__name__)


@dataclass
class WorkflowContext:
    config: Config
    executor: CommandExecutor
    registry: VcsRegistry
    project_root: Path = field(default_factory=Path.cwd)

    @classmethod
    def create(
        cls,
        config: Config | None = None,
        *,
        project_root: str | Path = ".",
        executor: CommandExecutor | None = None,
    ) -> WorkflowContext:
        config = config or Config()
        executor = executor or LocalExecutor()
        return cls(
            config=config,
            executor=executor,
            registry=VcsRegistry(executor),
            project_root=Path(project_root).resolve(),
        )

    @property
    def cwd(self) -> str:
        return str(self.project_root)

    @property
    def manifest_dir(self) -> Path:
        return self.project_root / self.config.manifest_dir

    @property
    def vendor_root(self) -> Path:
        return self.project_root / self.config.vendor_root

    def locate_manifest(self) -> ManifestLocation:
        return detect_format(self.project_root, self.config)

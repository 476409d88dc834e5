"""集中配置管理

所有可调项集中在 Config 中，由 CLI 入口构造后显式传递给各编排服务，
不使用进程级全局变量。支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
import os
import platform
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path

import yaml

from vendorpin.core.exceptions import ConfigError
from vendorpin.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

_MACHINE_TO_GOARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "i386": "386",
    "i686": "386",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
}


def _host_goos() -> str:
    system = platform.system().lower()
    return system or "linux"


def _host_goarch() -> str:
    return _MACHINE_TO_GOARCH.get(platform.machine().lower(), "amd64")


@dataclass
class Config:
    """工具全局配置"""

    # 清单
    manifest_dir: str = "Godeps"
    manifest_file: str = "Godeps.json"
    legacy_file: str = "Godeps"

    # vendor 目录布局
    vendor_experiment: bool = False
    vendor_dir: str = "vendor"
    workspace_src: str = "Godeps/_workspace/src"

    # 工具链
    go_cmd: str = "go"
    build_tags: str = ""
    goos: str = field(default_factory=lambda: os.getenv("GOOS", "") or _host_goos())
    goarch: str = field(default_factory=lambda: os.getenv("GOARCH", "") or _host_goarch())
    cgo_enabled: bool = field(default_factory=lambda: os.getenv("CGO_ENABLED", "1") != "0")

    # 执行
    max_workers: int = 8

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str | Path = ".vendorpin.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (yaml.YAMLError, ValueError, OSError) as e:
            raise ConfigError(f"配置文件读取失败: {path} - {e}") from e
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置文件内容无效: {path} - {e}") from e
        if cfg.max_workers < 1:
            raise ConfigError(f"max_workers 必须 >= 1: {cfg.max_workers}")
        cfg.extra = extra
        logger.info("配置已加载: %s", path)
        return cfg

    def with_overrides(self, **overrides: object) -> Config:
        """返回覆盖了部分字段的新配置（忽略值为 None 的项）"""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    @property
    def manifest_path(self) -> Path:
        return Path(self.manifest_dir) / self.manifest_file

    @property
    def vendor_root(self) -> Path:
        """依赖源码的复制目标目录"""
        if self.vendor_experiment:
            return Path(self.vendor_dir)
        return Path(self.workspace_src)

    def to_dict(self) -> dict:
        return asdict(self)

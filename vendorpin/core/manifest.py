"""清单读写

两种格式:
  - CURRENT: Godeps/Godeps.json，结构化 JSON 文档
  - LEGACY:  项目根下的纯文本文件 Godeps，每行一个 import path（可跟版本号），
             '#' 或 '//' 之后为注释，空行忽略

格式在解析之前由 detect_format() 一次性判定，不依赖"解析失败再回退"。
清单不存在时视为空清单，不是错误。
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from vendorpin.core.exceptions import ValidationError
from vendorpin.core.models import Dependency, Manifest
from vendorpin.utils.yaml_io import atomic_write

if TYPE_CHECKING:
    from vendorpin.core.config import Config

logger = logging.getLogger(__name__)


class ManifestFormat(Enum):
    CURRENT = "current"
    LEGACY = "legacy"


@dataclass(frozen=True)
class ManifestLocation:
    """格式判定结果"""

    format: ManifestFormat
    path: Path

    @property
    def exists(self) -> bool:
        return self.path.is_file()


def detect_format(project_root: str | Path, config: Config) -> ManifestLocation:
    """判定项目清单的格式与位置

    优先 Godeps/Godeps.json；否则若 Godeps 是普通文件则为旧格式；
    两者都不存在时返回 CURRENT 格式的（尚不存在的）默认路径。
    """
    root = Path(project_root)
    current = root / config.manifest_dir / config.manifest_file
    if current.is_file():
        return ManifestLocation(ManifestFormat.CURRENT, current)
    legacy = root / config.legacy_file
    if legacy.is_file():
        return ManifestLocation(ManifestFormat.LEGACY, legacy)
    return ManifestLocation(ManifestFormat.CURRENT, current)


def find_manifest(start: str | Path, config: Config) -> ManifestLocation | None:
    """从 start 向上查找已存在的清单，找不到返回 None"""
    d = Path(start).resolve()
    for candidate in (d, *d.parents):
        location = detect_format(candidate, config)
        if location.exists:
            return location
    return None


# =========================================================================
# 解码
# =========================================================================

def decode_current(text: str, source: str = "<manifest>") -> Manifest:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"清单格式错误: {source}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"清单顶层必须是对象: {source}")
    deps = data.get("Deps")
    if deps is not None and not isinstance(deps, list):
        raise ValidationError(f"清单 Deps 必须是数组: {source}")
    bad = [i for i, d in enumerate(deps or []) if not isinstance(d, dict)]
    if bad:
        raise ValidationError(f"清单 Deps 条目必须是对象: {source}", details=[str(i) for i in bad])
    manifest = Manifest.from_dict(data)
    _check_unique(manifest.deps, source)
    return manifest


def parse_legacy_lines(lines: Iterable[str]) -> list[Dependency]:
    """解析旧格式的行列表"""
    deps: list[Dependency] = []
    for line in lines:
        line = line.split("#", 1)[0]
        line = line.split("//", 1)[0]
        fields = line.split()
        if not fields:
            continue
        deps.append(Dependency(
            import_path=fields[0],
            rev=fields[1] if len(fields) > 1 else "",
        ))
    return deps


def decode_legacy(text: str, source: str = "<legacy>") -> Manifest:
    deps = parse_legacy_lines(text.splitlines())
    _check_unique(deps, source)
    return Manifest(deps=deps)


def _check_unique(deps: list[Dependency], source: str) -> None:
    seen: set[str] = set()
    dups = []
    for dep in deps:
        if dep.import_path in seen:
            dups.append(dep.import_path)
        seen.add(dep.import_path)
    if dups:
        raise ValidationError(f"清单中存在重复的 import path: {source}", details=dups)


def read_manifest(location: ManifestLocation) -> Manifest:
    """按已判定的格式读取清单；文件不存在返回空清单"""
    if not location.exists:
        return Manifest()
    text = location.path.read_text(encoding="utf-8")
    if location.format is ManifestFormat.LEGACY:
        manifest = decode_legacy(text, str(location.path))
    else:
        manifest = decode_current(text, str(location.path))
    logger.debug("已读取清单 %s (%s): %d 个依赖", location.path, location.format.value, len(manifest.deps))
    return manifest


# =========================================================================
# 编码
# =========================================================================

def encode_manifest(manifest: Manifest) -> str:
    """编码为当前格式；Deps 为空时输出 []，不会是 null"""
    return json.dumps(manifest.to_dict(), indent="\t", ensure_ascii=False) + "\n"


def encode_legacy(manifest: Manifest) -> str:
    """编码为旧格式: 每行 "import_path [rev]" """
    lines = [f"{d.import_path} {d.rev}".rstrip() for d in manifest.deps]
    return "".join(line + "\n" for line in lines)


def write_manifest(
    path: Path,
    manifest: Manifest,
    fmt: ManifestFormat = ManifestFormat.CURRENT,
) -> None:
    """原子写入清单；旧格式文件按原格式回写"""
    if fmt is ManifestFormat.LEGACY:
        atomic_write(path, encode_legacy(manifest))
    else:
        atomic_write(path, encode_manifest(manifest))
    logger.info("清单已写入: %s (%d 个依赖)", path, len(manifest.deps))

"""依赖源码快照

把依赖包源码从 workspace 复制到 vendor 目录，或从 vendor 目录删除。

复制规则:
  - 目标路径 = vendor_dir / (dep.dir 相对 dep.ws/src 的路径)，复制前先整体删除
  - 跳过 . / _ 前缀和 testdata 目录（与工具链包枚举规则一致）
  - 普通文件逐字节复制；符号链接按原样重建，不解引用
  - .go 文件去掉 package 子句上的规范 import 注释

单个文件失败只记录日志，整批结束后统一抛出 SnapshotError。
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Sequence

from vendorpin.core.exceptions import SnapshotError
from vendorpin.core.imports import skip_dir
from vendorpin.core.models import Dependency
from vendorpin.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

README = """\
This directory tree is generated automatically by vendorpin.

Please do not edit.
"""

VCS_IGNORE = "/pkg\n/bin\n"

_IMPORT_ANNOTATION = rb'import\s+(?:"[^"]*"|`[^`]*`)'
_IMPORT_COMMENT = (
    rb"(?://\s*" + _IMPORT_ANNOTATION + rb"\s*$"
    rb"|/\*\s*" + _IMPORT_ANNOTATION + rb"\s*\*/)"
)
_IMPORT_COMMENT_RE = re.compile(rb"^\s*(package\s+\w+)\s+" + _IMPORT_COMMENT + rb"(.*)")
_PKG_PREFIX = b"package "


def strip_import_comment(line: bytes) -> bytes:
    """去掉 package 子句后的规范 import 注释，其它行原样返回

    package foo // import "bar/foo"        → package foo
    package foo /* import "bar/foo" */ x   → package foo x

    line 不含行尾换行符。
    """
    if not line.startswith(_PKG_PREFIX):
        return line
    m = _IMPORT_COMMENT_RE.match(line)
    if m is None:
        return line
    return m.group(1) + m.group(2)


def _copy_without_import_comment(dst: Path, src: Path) -> None:
    with open(src, "rb") as r, open(dst, "wb") as w:
        for line in r:
            if line.endswith(b"\n"):
                w.write(strip_import_comment(line[:-1]) + b"\n")
            else:
                w.write(strip_import_comment(line))


def copy_file(dst: Path, src: Path) -> None:
    """复制单个文件；符号链接重建为链接

    异常:
        OSError: 读写失败
    """
    dst.parent.mkdir(parents=True, exist_ok=True)
    if src.is_symlink():
        os.symlink(os.readlink(src), dst)
        return
    if dst.suffix == ".go":
        _copy_without_import_comment(dst, src)
    else:
        shutil.copyfile(src, dst)


def _remove_tree(path: Path) -> None:
    """删除目录树或文件；不存在时静默返回"""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)


def _copy_dep(vendor_dir: Path, dep: Dependency, failures: list[str]) -> None:
    srcroot = Path(dep.ws) / "src"
    rel = os.path.relpath(dep.dir, srcroot)
    dstroot = vendor_dir / rel
    try:
        _remove_tree(dstroot)
    except OSError as e:
        logger.error("清理目标目录失败 %s: %s", dstroot, e)
        failures.append(f"{dep.import_path}: {e}")

    for dirpath, dirnames, filenames in os.walk(dep.dir, followlinks=False):
        base = Path(dirpath)
        kept = []
        for d in sorted(dirnames):
            if skip_dir(d):
                continue
            if (base / d).is_symlink():
                filenames.append(d)
            else:
                kept.append(d)
        dirnames[:] = kept

        for name in sorted(filenames):
            src = base / name
            dst = vendor_dir / os.path.relpath(src, srcroot)
            try:
                copy_file(dst, src)
            except OSError as e:
                logger.error("复制失败 %s: %s", src, e)
                failures.append(f"{dep.import_path}: {src}: {e}")


def copy_src(vendor_dir: str | Path, deps: Sequence[Dependency]) -> None:
    """把每个依赖的源码目录复制到 vendor_dir

    异常:
        SnapshotError: 有文件复制失败（其余文件仍会尝试）
    """
    vendor_dir = Path(vendor_dir)
    failures: list[str] = []
    for dep in deps:
        logger.info("复制源码: %s", dep.import_path)
        _copy_dep(vendor_dir, dep, failures)
    if failures:
        raise SnapshotError("error copying source code", details=failures)


def remove_src(vendor_dir: str | Path, deps: Sequence[Dependency]) -> None:
    """删除每个依赖在 vendor_dir 下的目录树，不存在时静默跳过

    异常:
        SnapshotError: 有目录删除失败（其余依赖仍会尝试）
    """
    vendor_dir = Path(vendor_dir)
    failures: list[str] = []
    for dep in deps:
        path = vendor_dir / dep.import_path
        try:
            _remove_tree(path)
        except OSError as e:
            logger.error("删除失败 %s: %s", path, e)
            failures.append(f"{dep.import_path}: {e}")
            continue
        logger.debug("已删除: %s", path)
    if failures:
        raise SnapshotError("error removing source code", details=failures)


def write_vcs_ignore(directory: str | Path) -> None:
    """在 directory 下写入 .gitignore，避免 pkg/ bin/ 被误提交；失败只记录日志"""
    path = Path(directory) / ".gitignore"
    try:
        atomic_write(path, VCS_IGNORE)
    except OSError as e:
        logger.error("写入 %s 失败: %s", path, e)


def write_readme(manifest_dir: str | Path) -> None:
    path = Path(manifest_dir) / "Readme"
    try:
        atomic_write(path, README)
    except OSError as e:
        logger.error("写入 %s 失败: %s", path, e)

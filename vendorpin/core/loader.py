"""包加载器 — 通过工具链子进程解析包元数据

load_packages:     go list -e -json 的流式解码，单条记录损坏只挂到该包 error 上
load_packages_all: 在声明依赖基础上追加源码级 import 扫描（遵循构建约束）
toolchain_version: 精简的 go version 输出，写入清单
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Iterable, Iterator, Sequence

from vendorpin.core.constraints import BuildTarget
from vendorpin.core.exceptions import DecodeError, SourceParseError, TransportError
from vendorpin.core.imports import ImportScanner
from vendorpin.core.models import ResolvedPackage

if TYPE_CHECKING:
    from vendorpin.core.config import Config
    from vendorpin.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


# =========================================================================
# 自定界记录流
# =========================================================================

def _frame_objects(lines: Iterable[str]) -> Iterator[tuple[bool, str]]:
    """把字符流切分为顶层 JSON 对象

    产出 (True, 对象文本) 或 (False, 无法成帧的残片)。
    只跟踪花括号深度和字符串状态，不缓冲整个流。
    """
    buf: list[str] = []
    junk: list[str] = []
    depth = 0
    in_str = escaped = False

    for line in lines:
        for ch in line:
            if depth == 0:
                if ch == "{":
                    if "".join(junk).strip():
                        yield False, "".join(junk)
                    junk = []
                    buf = [ch]
                    depth = 1
                else:
                    junk.append(ch)
                continue

            buf.append(ch)
            if in_str:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_str = False
            elif ch == '"':
                in_str = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    yield True, "".join(buf)
                    buf = []

    if depth > 0:
        yield False, "".join(buf)
    elif "".join(junk).strip():
        yield False, "".join(junk)


def _error_record(text: str, reason: str) -> ResolvedPackage:
    snippet = text.strip().replace("\n", " ")[:80]
    err = DecodeError(f"无法解析包记录 ({reason}): {snippet}")
    return ResolvedPackage(error=str(err))


def iter_package_records(lines: Iterable[str]) -> Iterator[ResolvedPackage]:
    """拉取式解码器: 每个顶层对象产出一个 ResolvedPackage，流结束即终止"""
    for ok, text in _frame_objects(lines):
        if not ok:
            yield _error_record(text, "记录不完整")
            continue
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            yield _error_record(text, str(e))
            continue
        if not isinstance(data, dict):
            yield _error_record(text, "不是对象")
            continue
        yield ResolvedPackage.from_record(data)


# =========================================================================
# 工具链调用
# =========================================================================

def load_packages(
    import_paths: Sequence[str],
    *,
    config: Config,
    executor: CommandExecutor,
    tags: str = "",
    cwd: str = ".",
) -> list[ResolvedPackage]:
    """加载指定包的元数据

    与工具链不同，空参数列表返回空列表；需要当前包时须显式传入 "."。

    异常:
        TransportError: 子进程无法启动或非零退出
    """
    if not import_paths:
        return []
    cmd = [config.go_cmd, "list", "-e", "-json"]
    if tags:
        cmd += ["-tags", tags]
    cmd += list(import_paths)
    return list(iter_package_records(executor.stream(cmd, cwd=cwd)))


def load_packages_all(
    import_paths: Sequence[str],
    *,
    config: Config,
    executor: CommandExecutor,
    tags: str = "",
    cwd: str = ".",
) -> list[ResolvedPackage]:
    """加载包元数据，并把源码扫描出的 import 合并进 deps（排序去重）"""
    packages = load_packages(
        import_paths, config=config, executor=executor, tags=tags, cwd=cwd,
    )
    target = BuildTarget.from_config(config.with_overrides(build_tags=tags or None))
    with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
        scanner = ImportScanner(target, pool)
        for pkg in packages:
            if not pkg.dir:
                continue
            try:
                scanned = scanner.scan(pkg.dir)
            except SourceParseError as e:
                logger.warning("import 扫描失败 %s: %s", pkg.import_path, e)
                pkg.error = pkg.error or str(e)
                continue
            pkg.deps = sorted(set(pkg.deps) | scanned)
            pkg.go_files = [*pkg.go_files, *pkg.ignored_go_files]
            pkg.ignored_go_files = []
    return packages


def toolchain_version(*, config: Config, executor: CommandExecutor) -> str:
    """返回精简的工具链版本，如 go1.21.3；开发版返回 "devel <hash>" """
    cmd = [config.go_cmd, "version"]
    r = executor.execute(cmd)
    if not r.success:
        raise TransportError(
            f"命令执行失败 `{' '.join(cmd)}` (rc={r.returncode}): {r.stderr.strip()[:300]}"
        )
    fields = r.stdout.split()
    if len(fields) < 4:
        raise TransportError(f"无法识别的工具链版本输出: {r.stdout.strip()!r}")
    if fields[2] == "devel":
        return f"{fields[2]} {fields[3]}"
    return fields[2]

"""源码 import 扫描

只解析文件头: 构建约束注释 → package 子句 → import 声明，
遇到第一个非 import 声明即停止。不依赖工具链，纯文本扫描。
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from vendorpin.core.constraints import BuildTarget, should_build
from vendorpin.core.exceptions import SourceParseError

logger = logging.getLogger(__name__)

_IDENT_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_"
)


def skip_dir(name: str) -> bool:
    """与工具链包枚举一致的目录排除规则"""
    return name.startswith((".", "_")) or name == "testdata"


@dataclass
class SourceHeader:
    """单个源文件的头部信息"""

    package: str
    imports: list[str] = field(default_factory=list)
    go_build: list[str] = field(default_factory=list)
    plus_build: list[str] = field(default_factory=list)


class _Cursor:
    def __init__(self, text: str, filename: str) -> None:
        self.text = text
        self.filename = filename
        self.pos = 0

    def error(self, msg: str) -> SourceParseError:
        line = self.text.count("\n", 0, self.pos) + 1
        return SourceParseError(f"{self.filename}:{line}: {msg}")

    def eof(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self, n: int = 1) -> str:
        return self.text[self.pos:self.pos + n]

    def skip_space(self, comments: list[str] | None = None) -> None:
        """跳过空白和注释，行注释内容追加到 comments"""
        while not self.eof():
            ch = self.text[self.pos]
            if ch in " \t\r\n":
                self.pos += 1
            elif self.peek(2) == "//":
                end = self.text.find("\n", self.pos)
                end = len(self.text) if end < 0 else end
                if comments is not None:
                    comments.append(self.text[self.pos:end])
                self.pos = end
            elif self.peek(2) == "/*":
                end = self.text.find("*/", self.pos + 2)
                if end < 0:
                    raise self.error("注释未闭合")
                self.pos = end + 2
            else:
                break

    def ident(self) -> str:
        start = self.pos
        while not self.eof() and self.text[self.pos] in _IDENT_CHARS:
            self.pos += 1
        return self.text[start:self.pos]

    def keyword(self, word: str) -> bool:
        end = self.pos + len(word)
        if self.text[self.pos:end] != word:
            return False
        if end < len(self.text) and self.text[end] in _IDENT_CHARS:
            return False
        self.pos = end
        return True

    def string(self) -> str:
        quote = self.peek()
        if quote == "`":
            end = self.text.find("`", self.pos + 1)
            if end < 0:
                raise self.error("字符串未闭合")
            value = self.text[self.pos + 1:end]
            self.pos = end + 1
            return value
        if quote != '"':
            raise self.error("期望 import 路径字符串")
        chars: list[str] = []
        i = self.pos + 1
        while i < len(self.text):
            ch = self.text[i]
            if ch == "\\" and i + 1 < len(self.text):
                chars.append(self.text[i + 1])
                i += 2
                continue
            if ch == '"':
                self.pos = i + 1
                return "".join(chars)
            if ch == "\n":
                break
            chars.append(ch)
            i += 1
        raise self.error("字符串未闭合")


def parse_header(text: str, filename: str = "<source>") -> SourceHeader:
    """解析源文件头，返回 package 名、import 列表和构建约束

    异常:
        SourceParseError: 缺少 package 子句、字符串/注释/括号未闭合
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    cur = _Cursor(text, filename)
    comments: list[str] = []
    cur.skip_space(comments)
    if not cur.keyword("package"):
        raise cur.error("期望 'package' 子句")
    cur.skip_space()
    name = cur.ident()
    if not name:
        raise cur.error("期望包名")

    header = SourceHeader(package=name)
    for c in comments:
        body = c[2:].strip()
        if c.startswith("//go:build"):
            header.go_build.append(c[len("//go:build"):].strip())
        elif body.startswith("+build"):
            header.plus_build.append(body[len("+build"):].strip())

    while True:
        cur.skip_space()
        while cur.peek() == ";":
            cur.pos += 1
            cur.skip_space()
        if not cur.keyword("import"):
            break
        cur.skip_space()
        if cur.peek() == "(":
            cur.pos += 1
            while True:
                cur.skip_space()
                while cur.peek() == ";":
                    cur.pos += 1
                    cur.skip_space()
                if cur.eof():
                    raise cur.error("import 块未闭合")
                if cur.peek() == ")":
                    cur.pos += 1
                    break
                header.imports.append(_import_spec(cur))
        else:
            header.imports.append(_import_spec(cur))
    return header


def _import_spec(cur: _Cursor) -> str:
    """[名称 | . | _] "路径" """
    if cur.peek() == ".":
        cur.pos += 1
    else:
        cur.ident()
    cur.skip_space()
    return cur.string().strip()


def is_local_import(path: str) -> bool:
    return path == "C" or path.startswith(".") or path.startswith("/")


def file_imports(path: str, target: BuildTarget) -> set[str]:
    """返回单个文件在目标平台下的非本地 import 集合；被约束排除时返回空集"""
    try:
        text = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise SourceParseError(f"{path}: {e}") from e
    header = parse_header(text, path)
    if not should_build(path, header.go_build, header.plus_build, target):
        logger.debug("构建约束排除: %s", path)
        return set()
    return {p for p in header.imports if not is_local_import(p)}


def walk_source_files(directory: str) -> Iterator[str]:
    """遍历目录下的 .go 文件，跳过 . / _ 前缀和 testdata 子树"""
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames[:] = sorted(d for d in dirnames if not skip_dir(d))
        for name in sorted(filenames):
            if name.endswith(".go") and not name.startswith((".", "_")):
                yield os.path.join(dirpath, name)


class ImportScanner:
    """按文件扇出的 import 扫描器

    每个文件一个任务，任务各自返回私有的结果集合，在唯一的汇合点合并。
    某个包内首个解析错误会取消该包尚未开始的任务，已开始的任务照常收尾。
    """

    def __init__(self, target: BuildTarget, pool: ThreadPoolExecutor) -> None:
        self.target = target
        self.pool = pool

    def scan(self, directory: str) -> set[str]:
        futures: list[Future[set[str]]] = [
            self.pool.submit(file_imports, f, self.target)
            for f in walk_source_files(directory)
        ]
        found: set[str] = set()
        first_error: SourceParseError | None = None
        for fut in as_completed(futures):
            if fut.cancelled():
                continue
            try:
                found |= fut.result()
            except SourceParseError as e:
                if first_error is None:
                    first_error = e
                    for other in futures:
                        other.cancel()
        if first_error is not None:
            raise first_error
        return found

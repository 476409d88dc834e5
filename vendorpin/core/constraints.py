"""条件编译约束求值

支持三种约束来源:
  - //go:build 表达式（&&, ||, !, 括号）
  - 旧式 // +build 行（空格 = 或，逗号 = 与，! = 非，多行之间为与）
  - 文件名后缀 _GOOS / _GOARCH / _GOOS_GOARCH

同一文件同时存在两种注释形式时以 //go:build 为准。
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import TYPE_CHECKING, Callable

from vendorpin.core.exceptions import SourceParseError

if TYPE_CHECKING:
    from vendorpin.core.config import Config

KNOWN_OS = frozenset((
    "aix android darwin dragonfly freebsd hurd illumos ios js linux nacl "
    "netbsd openbsd plan9 solaris wasip1 windows zos"
).split())

KNOWN_ARCH = frozenset((
    "386 amd64 amd64p32 arm armbe arm64 arm64be loong64 mips mipsle mips64 "
    "mips64le mips64p32 mips64p32le ppc ppc64 ppc64le riscv riscv64 s390 "
    "s390x sparc sparc64 wasm"
).split())

UNIX_OS = frozenset((
    "aix android darwin dragonfly freebsd hurd illumos ios linux netbsd "
    "openbsd solaris"
).split())

# GOOS 的隐含匹配: android 同时满足 linux，illumos 满足 solaris，ios 满足 darwin
_IMPLIED_OS = {"android": "linux", "illumos": "solaris", "ios": "darwin"}

_TOKEN_RE = re.compile(r"\s*(\(|\)|!|&&|\|\||[A-Za-z0-9_.]+)")
_RELEASE_TAG_RE = re.compile(r"^go1\.(\d+)$")


@dataclass(frozen=True)
class BuildTarget:
    """目标平台 + 自定义标签"""

    goos: str
    goarch: str
    tags: frozenset[str] = field(default_factory=frozenset)
    cgo_enabled: bool = True
    release_minor: int = 22

    @classmethod
    def from_config(cls, config: Config) -> BuildTarget:
        tags = frozenset(t for t in re.split(r"[,\s]+", config.build_tags) if t)
        return cls(
            goos=config.goos,
            goarch=config.goarch,
            tags=tags,
            cgo_enabled=config.cgo_enabled,
        )

    def satisfies(self, tag: str) -> bool:
        if tag in (self.goos, self.goarch) or tag in self.tags:
            return True
        if _IMPLIED_OS.get(self.goos) == tag:
            return True
        if tag == "unix":
            return self.goos in UNIX_OS
        if tag == "cgo":
            return self.cgo_enabled
        if tag == "gc":
            return True
        m = _RELEASE_TAG_RE.match(tag)
        if m:
            return int(m.group(1)) <= self.release_minor
        return False


# =========================================================================
# //go:build 表达式
# =========================================================================

Expr = Callable[[BuildTarget], bool]


class _ExprParser:
    """递归下降: or := and ('||' and)* ; and := not ('&&' not)* ;
    not := '!' not | '(' or ')' | tag"""

    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = self._tokenize(text)
        self.pos = 0

    def _tokenize(self, text: str) -> list[str]:
        tokens: list[str] = []
        i = 0
        while i < len(text):
            if text[i].isspace():
                i += 1
                continue
            m = _TOKEN_RE.match(text, i)
            if not m:
                raise SourceParseError(f"非法构建约束: {text!r}")
            tokens.append(m.group(1))
            i = m.end()
        return tokens

    def _peek(self) -> str:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else ""

    def _next(self) -> str:
        tok = self._peek()
        if not tok:
            raise SourceParseError(f"构建约束意外结束: {self.text!r}")
        self.pos += 1
        return tok

    def parse(self) -> Expr:
        expr = self._or()
        if self.pos != len(self.tokens):
            raise SourceParseError(f"构建约束存在多余内容: {self.text!r}")
        return expr

    def _or(self) -> Expr:
        terms = [self._and()]
        while self._peek() == "||":
            self._next()
            terms.append(self._and())
        if len(terms) == 1:
            return terms[0]
        return lambda t: any(x(t) for x in terms)

    def _and(self) -> Expr:
        terms = [self._not()]
        while self._peek() == "&&":
            self._next()
            terms.append(self._not())
        if len(terms) == 1:
            return terms[0]
        return lambda t: all(x(t) for x in terms)

    def _not(self) -> Expr:
        tok = self._next()
        if tok == "!":
            inner = self._not()
            return lambda t: not inner(t)
        if tok == "(":
            inner = self._or()
            if self._next() != ")":
                raise SourceParseError(f"构建约束括号不匹配: {self.text!r}")
            return inner
        if tok in (")", "&&", "||"):
            raise SourceParseError(f"构建约束语法错误: {self.text!r}")
        return lambda t: t.satisfies(tok)


def parse_go_build(expr: str) -> Expr:
    """解析 //go:build 之后的表达式文本"""
    return _ExprParser(expr).parse()


def eval_plus_build(line: str, target: BuildTarget) -> bool:
    """求值单行 // +build 约束（不含前缀）"""
    for term in line.split():
        ok = True
        for atom in term.split(","):
            negated = atom.startswith("!")
            name = atom[1:] if negated else atom
            if not name or name.startswith("!"):
                raise SourceParseError(f"非法 +build 约束: {line!r}")
            if target.satisfies(name) == negated:
                ok = False
                break
        if ok:
            return True
    return False


def match_file_name(filename: str, target: BuildTarget) -> bool:
    """文件名 _GOOS / _GOARCH 后缀匹配"""
    name = PurePath(filename).name
    if name.endswith(".go"):
        name = name[:-3]
    if name.endswith("_test"):
        name = name[:-5]
    i = name.find("_")
    if i < 0:
        return True
    parts = name[i:].split("_")
    n = len(parts)
    if n >= 2 and parts[n - 2] in KNOWN_OS and parts[n - 1] in KNOWN_ARCH:
        return target.satisfies(parts[n - 2]) and target.satisfies(parts[n - 1])
    if parts[n - 1] in KNOWN_OS:
        return target.satisfies(parts[n - 1])
    if parts[n - 1] in KNOWN_ARCH:
        return target.satisfies(parts[n - 1])
    return True


def should_build(
    filename: str,
    go_build: list[str],
    plus_build: list[str],
    target: BuildTarget,
) -> bool:
    """综合文件名与注释约束判断文件是否参与目标平台构建"""
    if not match_file_name(filename, target):
        return False
    if go_build:
        return all(parse_go_build(expr)(target) for expr in go_build)
    return all(eval_plus_build(line, target) for line in plus_build)

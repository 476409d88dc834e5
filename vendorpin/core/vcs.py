"""版本控制适配层

VcsAdapter 协议定义工作流所需的能力集；CommandVcs 基于命令表实现，
每个操作对应一次子进程调用。VcsRegistry 从包目录向上查找仓库标记，
按仓库根目录缓存适配器实例，同一仓库只探测一次。

支持: git / hg (mercurial) / bzr (bazaar) / svn (subversion)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from vendorpin.core.exceptions import UnrecognizedRepository, VcsCommandError
from vendorpin.utils.shell import CommandExecutor, CommandResult

logger = logging.getLogger(__name__)


class VcsAdapter(Protocol):
    """绑定到单个仓库根的版本控制能力集"""

    name: str

    def identify(self, directory: str) -> str:
        """返回当前检出的版本 ID"""
        ...

    def exists(self, directory: str, rev: str) -> bool:
        """版本在本地仓库中是否可达"""
        ...

    def is_dirty(self, directory: str, rev: str) -> bool:
        """工作目录相对 rev 是否有改动"""
        ...

    def describe(self, directory: str, rev: str) -> str:
        """版本的可读描述（tag 等），失败返回空串"""
        ...

    def download(self, directory: str) -> None:
        """拉取远端更新"""
        ...

    def rev_sync(self, directory: str, rev: str) -> None:
        """把工作目录强制切换到指定版本"""
        ...

    def log(self, directory: str, rev: str) -> str:
        """rev 之后的提交记录"""
        ...


@dataclass(frozen=True)
class VcsCommands:
    """单个后端的命令表，参数中的 {rev} 在调用时替换"""

    name: str
    cmd: str
    marker: str
    identify: tuple[str, ...]
    describe: tuple[str, ...]
    diff: tuple[str, ...]
    exists: tuple[str, ...]
    download: tuple[str, ...]
    rev_sync: tuple[str, ...]
    log: tuple[str, ...]


GIT = VcsCommands(
    name="git", cmd="git", marker=".git",
    identify=("rev-parse", "HEAD"),
    describe=("describe", "--tags", "{rev}"),
    diff=("diff", "{rev}"),
    exists=("cat-file", "-e", "{rev}"),
    download=("fetch",),
    rev_sync=("checkout", "{rev}"),
    log=("log", "--oneline", "{rev}..HEAD"),
)

HG = VcsCommands(
    name="hg", cmd="hg", marker=".hg",
    identify=("parents", "--template", "{node}"),
    describe=("log", "-r", "{rev}", "--template", "{latesttag}-{latesttagdistance}"),
    diff=("diff", "-r", "{rev}"),
    exists=("cat", "-r", "{rev}", "."),
    download=("pull",),
    rev_sync=("update", "-r", "{rev}"),
    log=("log", "-r", "{rev}:tip"),
)

BZR = VcsCommands(
    name="bzr", cmd="bzr", marker=".bzr",
    identify=("version-info", "--custom", "--template", "{revision_id}"),
    describe=("revision-info", "-r", "revid:{rev}"),
    diff=("diff", "-r", "revid:{rev}"),
    exists=("revision-info", "-r", "revid:{rev}"),
    download=("pull", "--overwrite"),
    rev_sync=("update", "-r", "revid:{rev}"),
    log=("log", "-r", "revid:{rev}.."),
)

SVN = VcsCommands(
    name="svn", cmd="svn", marker=".svn",
    identify=("info", "--show-item", "last-changed-revision"),
    describe=("log", "-q", "-l", "1", "-r", "{rev}"),
    diff=("diff", "-r", "{rev}"),
    exists=("log", "-q", "-l", "1", "-r", "{rev}"),
    download=("update",),
    rev_sync=("update", "-r", "{rev}"),
    log=("log", "-r", "{rev}:HEAD"),
)

BACKENDS: tuple[VcsCommands, ...] = (GIT, HG, BZR, SVN)


def _first_meaningful_line(text: str) -> str:
    for line in text.splitlines():
        line = line.strip()
        if line and set(line) != {"-"}:
            return line
    return ""


class CommandVcs:
    """基于命令表的 VcsAdapter 实现"""

    def __init__(self, commands: VcsCommands, executor: CommandExecutor) -> None:
        self.commands = commands
        self.executor = executor

    @property
    def name(self) -> str:
        return self.commands.name

    def __repr__(self) -> str:
        return f"CommandVcs({self.commands.name})"

    def _argv(self, template: tuple[str, ...], rev: str = "") -> list[str]:
        return [self.commands.cmd, *(a.replace("{rev}", rev) for a in template)]

    def _run(self, directory: str, template: tuple[str, ...], rev: str = "") -> CommandResult:
        return self.executor.execute(self._argv(template, rev), cwd=directory)

    def _check(self, directory: str, template: tuple[str, ...], rev: str = "") -> str:
        r = self._run(directory, template, rev)
        if not r.success:
            argv = " ".join(self._argv(template, rev))
            raise VcsCommandError(
                f"`{argv}` 在 {directory} 执行失败 (rc={r.returncode}): {r.stderr.strip()[:300]}"
            )
        return r.stdout

    def identify(self, directory: str) -> str:
        return self._check(directory, self.commands.identify).strip()

    def exists(self, directory: str, rev: str) -> bool:
        if not rev:
            return False
        return self._run(directory, self.commands.exists, rev).success

    def is_dirty(self, directory: str, rev: str) -> bool:
        r = self._run(directory, self.commands.diff, rev)
        return not r.success or bool(r.stdout)

    def describe(self, directory: str, rev: str) -> str:
        r = self._run(directory, self.commands.describe, rev)
        if not r.success:
            return ""
        return _first_meaningful_line(r.stdout)

    def download(self, directory: str) -> None:
        logger.info("%s 拉取: %s", self.name, directory)
        self._check(directory, self.commands.download)

    def rev_sync(self, directory: str, rev: str) -> None:
        logger.debug("%s 切换到 %s: %s", self.name, rev, directory)
        self._check(directory, self.commands.rev_sync, rev)

    def log(self, directory: str, rev: str) -> str:
        return self._check(directory, self.commands.log, rev)


class VcsRegistry:
    """仓库根目录 → 适配器 的查找表"""

    def __init__(
        self,
        executor: CommandExecutor,
        backends: tuple[VcsCommands, ...] = BACKENDS,
    ) -> None:
        self.executor = executor
        self.backends = backends
        self._bindings: dict[str, CommandVcs] = {}

    def from_dir(self, directory: str, src_root: str) -> tuple[CommandVcs, str]:
        """从 directory 向上查找仓库标记（不越过 src_root）

        返回 (适配器, 仓库根相对 src_root 的斜杠路径)。

        异常:
            UnrecognizedRepository: 找不到任何已知的版本控制标记
        """
        d = os.path.abspath(directory)
        root = os.path.abspath(src_root)
        if d != root and not d.startswith(root + os.sep):
            raise UnrecognizedRepository(directory)

        while len(d) > len(root):
            adapter = self._bindings.get(d)
            if adapter is None:
                adapter = self._detect(d)
            if adapter is not None:
                return adapter, Path(os.path.relpath(d, root)).as_posix()
            parent = os.path.dirname(d)
            if parent == d:
                break
            d = parent
        raise UnrecognizedRepository(directory)

    def _detect(self, directory: str) -> CommandVcs | None:
        for backend in self.backends:
            if os.path.exists(os.path.join(directory, backend.marker)):
                adapter = CommandVcs(backend, self.executor)
                self._bindings[directory] = adapter
                logger.debug("识别仓库 %s: %s", backend.name, directory)
                return adapter
        return None

    def bindings(self) -> dict[str, CommandVcs]:
        """当前已缓存的绑定（只读副本）"""
        return dict(self._bindings)

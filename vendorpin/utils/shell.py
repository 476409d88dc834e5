"""Shell 命令执行工具 — 统一子进程调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换。
三种调用形态:
  - execute: 捕获 stdout/stderr，返回 CommandResult（VCS 查询类命令）
  - stream:  逐行拉取 stdout，stderr 继承当前进程（工具链元数据流）
  - run_inherited: stdio 全部继承当前进程（go get 等需要用户可见输出的命令）

子进程无法启动时统一抛出 TransportError；不设置超时。
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Iterator, Protocol

from vendorpin.core.exceptions import TransportError

logger = logging.getLogger(__name__)


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议 — 抽象子进程调用

    测试时可注入 fake 实现，无需 patch subprocess。
    """

    def execute(
        self,
        cmd: list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """执行命令并返回结果"""
        ...

    def stream(
        self,
        cmd: list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
    ) -> Iterator[str]:
        """逐行产出 stdout；结束时非零退出码抛 TransportError"""
        ...

    def run_inherited(
        self,
        cmd: list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
    ) -> int:
        """继承 stdio 执行命令，返回退出码"""
        ...


# =========================================================================
# 默认实现: 本地执行器
# =========================================================================

class LocalExecutor:
    """本地子进程执行器（默认实现）"""

    def execute(
        self,
        cmd: list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        logger.debug("exec: %s (cwd=%s)", " ".join(cmd), cwd)
        try:
            r = subprocess.run(
                cmd, capture_output=True, text=True,
                cwd=cwd, env=env, check=False,
            )
        except OSError as e:
            raise TransportError(f"无法启动命令 `{' '.join(cmd)}`: {e}") from e
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )

    def stream(
        self,
        cmd: list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
    ) -> Iterator[str]:
        logger.debug("stream: %s (cwd=%s)", " ".join(cmd), cwd)
        try:
            proc = subprocess.Popen(
                cmd, stdout=subprocess.PIPE, text=True,
                cwd=cwd, env=env,
            )
        except OSError as e:
            raise TransportError(f"无法启动命令 `{' '.join(cmd)}`: {e}") from e

        assert proc.stdout is not None
        try:
            yield from proc.stdout
        finally:
            proc.stdout.close()
            returncode = proc.wait()
        if returncode != 0:
            raise TransportError(
                f"命令执行失败 `{' '.join(cmd)}` (rc={returncode})"
            )

    def run_inherited(
        self,
        cmd: list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
    ) -> int:
        logger.debug("run: %s (cwd=%s)", " ".join(cmd), cwd)
        try:
            return subprocess.run(cmd, cwd=cwd, env=env, check=False).returncode
        except OSError as e:
            raise TransportError(f"无法启动命令 `{' '.join(cmd)}`: {e}") from e

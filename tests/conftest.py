"""测试公共夹具 — 假命令执行器与 workspace 布局

FakeExecutor 按命令前缀（可选 cwd）匹配预置响应，不启动任何子进程。
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest

from vendorpin.core.config import Config
from vendorpin.core.exceptions import TransportError
from vendorpin.services.context import WorkflowContext
from vendorpin.utils.shell import CommandResult

Responder = Callable[[list[str], str], CommandResult]


class FakeExecutor:
    """CommandExecutor 的测试实现；后注册的响应优先"""

    def __init__(self) -> None:
        self.calls: list[tuple[list[str], str]] = []
        self._handlers: list[tuple[tuple[str, ...], str | None, Responder]] = []

    def on(
        self,
        *prefix: str,
        cwd: str | Path | None = None,
        stdout: str = "",
        returncode: int = 0,
        respond: Responder | None = None,
    ) -> None:
        if respond is None:
            result = CommandResult(returncode, stdout, "" if returncode == 0 else "failed")
            respond = lambda cmd, d: result  # noqa: E731
        where = os.path.abspath(cwd) if cwd is not None else None
        self._handlers.append((prefix, where, respond))

    def _dispatch(self, cmd: list[str], cwd: str) -> CommandResult:
        self.calls.append((list(cmd), cwd))
        here = os.path.abspath(cwd)
        for prefix, where, respond in reversed(self._handlers):
            if tuple(cmd[: len(prefix)]) != prefix:
                continue
            if where is not None and here != where and not here.startswith(where + os.sep):
                continue
            return respond(list(cmd), cwd)
        return CommandResult(127, "", f"unexpected command: {' '.join(cmd)}")

    def execute(self, cmd: list[str], *, cwd: str = ".", env: Any = None) -> CommandResult:
        return self._dispatch(cmd, cwd)

    def stream(self, cmd: list[str], *, cwd: str = ".", env: Any = None) -> Iterator[str]:
        r = self._dispatch(cmd, cwd)
        yield from r.stdout.splitlines(keepends=True)
        if not r.success:
            raise TransportError(f"命令执行失败 `{' '.join(cmd)}` (rc={r.returncode})")

    def run_inherited(self, cmd: list[str], *, cwd: str = ".", env: Any = None) -> int:
        return self._dispatch(cmd, cwd).returncode

    def commands(self, *prefix: str) -> list[list[str]]:
        return [c for c, _ in self.calls if tuple(c[: len(prefix)]) == prefix]

    # ---- 工具链 ----

    def go_list(self, records: dict[str, dict[str, Any]]) -> None:
        """go list -e -json: 按参数顺序输出 records 中的记录，未知包输出错误记录"""

        def respond(cmd: list[str], cwd: str) -> CommandResult:
            args = cmd[4:]
            if args[:1] == ["-tags"]:
                args = args[2:]
            out = []
            for path in args:
                rec = records.get(path) or {
                    "ImportPath": path,
                    "Error": {"Err": f"cannot find package {path!r}"},
                }
                out.append(json.dumps(rec, indent="\t"))
            return CommandResult(0, "\n".join(out) + "\n", "")

        self.on("go", "list", respond=respond)

    def go_version(self, version: str = "go1.21.3") -> None:
        self.on("go", "version", stdout=f"go version {version} linux/amd64\n")

    # ---- git 仓库 ----

    def git_repo(
        self,
        directory: str | Path,
        head: str,
        *,
        known: tuple[str, ...] = (),
        dirty: bool = False,
        describe: str = "",
        fetched: tuple[str, ...] = (),
    ) -> dict[str, Any]:
        """模拟 directory 处的 git 仓库，返回可修改的状态字典"""
        state: dict[str, Any] = {
            "head": head,
            "known": {head, *known},
            "dirty": dirty,
            "fetched": set(fetched),
        }

        def rev_parse(cmd: list[str], cwd: str) -> CommandResult:
            return CommandResult(0, state["head"] + "\n", "")

        def cat_file(cmd: list[str], cwd: str) -> CommandResult:
            return CommandResult(0 if cmd[3] in state["known"] else 128, "", "")

        def diff(cmd: list[str], cwd: str) -> CommandResult:
            return CommandResult(0, "diff --git a/x b/x\n" if state["dirty"] else "", "")

        def fetch(cmd: list[str], cwd: str) -> CommandResult:
            state["known"] |= state["fetched"]
            return CommandResult(0, "", "")

        def checkout(cmd: list[str], cwd: str) -> CommandResult:
            if cmd[2] not in state["known"]:
                return CommandResult(1, "", f"pathspec {cmd[2]!r} did not match")
            state["head"] = cmd[2]
            return CommandResult(0, "", "")

        def log(cmd: list[str], cwd: str) -> CommandResult:
            return CommandResult(0, f"{state['head'][:7]} newer commit\n", "")

        self.on("git", "rev-parse", cwd=directory, respond=rev_parse)
        self.on("git", "cat-file", cwd=directory, respond=cat_file)
        self.on("git", "diff", cwd=directory, respond=diff)
        self.on("git", "describe", cwd=directory,
                stdout=describe + "\n", returncode=0 if describe else 128)
        self.on("git", "fetch", cwd=directory, respond=fetch)
        self.on("git", "checkout", cwd=directory, respond=checkout)
        self.on("git", "log", cwd=directory, respond=log)
        return state


class GoWorkspace:
    """tmp 目录下的 GOPATH 风格 workspace"""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.src = root / "src"
        self.src.mkdir(parents=True, exist_ok=True)

    def package(
        self,
        import_path: str,
        files: dict[str, str] | None = None,
        *,
        repo: bool = False,
    ) -> Path:
        d = self.src / import_path
        d.mkdir(parents=True, exist_ok=True)
        if repo:
            (d / ".git").mkdir(exist_ok=True)
        for name, text in (files or {}).items():
            p = d / name
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(text)
        return d

    def record(self, import_path: str, **extra: Any) -> dict[str, Any]:
        rec: dict[str, Any] = {
            "ImportPath": import_path,
            "Dir": str(self.src / import_path),
            "Root": str(self.root),
        }
        rec.update(extra)
        return rec


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def gopath(tmp_path: Path) -> GoWorkspace:
    return GoWorkspace(tmp_path / "gopath")


@pytest.fixture
def config() -> Config:
    return Config(goos="linux", goarch="amd64", max_workers=2)


@pytest.fixture
def make_context(fake_executor: FakeExecutor, config: Config) -> Callable[..., WorkflowContext]:
    def make(project_root: Path, cfg: Config | None = None) -> WorkflowContext:
        return WorkflowContext.create(
            cfg or config, project_root=project_root, executor=fake_executor,
        )

    return make

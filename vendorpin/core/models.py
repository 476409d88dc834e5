"""核心数据模型

Dependency / Manifest 为持久化对象（清单文件），ResolvedPackage 为
每次调用时由 Package Loader 重新生成的临时对象，不跨调用缓存。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from vendorpin.core.vcs import VcsAdapter


@dataclass
class Dependency:
    """清单中的单个依赖（import_path 在清单内唯一）"""

    import_path: str
    rev: str = ""
    comment: str = ""
    root: str = ""  # 仓库根对应的 import path

    # 以下字段不持久化
    dir: str = field(default="", compare=False, repr=False)
    ws: str = field(default="", compare=False, repr=False)  # 所在 workspace 根目录
    vcs: VcsAdapter | None = field(default=None, compare=False, repr=False)
    matched: bool = field(default=False, compare=False, repr=False)

    def to_dict(self) -> dict[str, str]:
        data = {"ImportPath": self.import_path}
        if self.comment:
            data["Comment"] = self.comment
        data["Rev"] = self.rev
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Dependency:
        return cls(
            import_path=data.get("ImportPath", ""),
            rev=data.get("Rev", ""),
            comment=data.get("Comment", ""),
        )


@dataclass
class Manifest:
    """依赖清单"""

    import_path: str = ""
    toolchain_version: str = ""
    packages: list[str] | None = None  # 仅在 save 显式指定包时存在
    deps: list[Dependency] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "ImportPath": self.import_path,
            "GoVersion": self.toolchain_version,
        }
        if self.packages:
            data["Packages"] = list(self.packages)
        data["Deps"] = [d.to_dict() for d in self.deps]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Manifest:
        return cls(
            import_path=data.get("ImportPath", ""),
            toolchain_version=data.get("GoVersion", ""),
            packages=data.get("Packages") or None,
            deps=[Dependency.from_dict(d) for d in data.get("Deps") or []],
        )

    def find(self, import_path: str) -> Dependency | None:
        for dep in self.deps:
            if dep.import_path == import_path:
                return dep
        return None


@dataclass
class ResolvedPackage:
    """工具链解析出的包元数据（对应 go list -json 的一条记录）"""

    import_path: str = ""
    dir: str = ""
    root: str = ""
    deps: list[str] = field(default_factory=list)
    standard: bool = False

    go_files: list[str] = field(default_factory=list)
    cgo_files: list[str] = field(default_factory=list)
    ignored_go_files: list[str] = field(default_factory=list)

    test_go_files: list[str] = field(default_factory=list)
    test_imports: list[str] = field(default_factory=list)
    xtest_go_files: list[str] = field(default_factory=list)
    xtest_imports: list[str] = field(default_factory=list)

    error: str = ""

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> ResolvedPackage:
        err = data.get("Error") or {}
        return cls(
            import_path=data.get("ImportPath", ""),
            dir=data.get("Dir", ""),
            root=data.get("Root", ""),
            deps=list(data.get("Deps") or []),
            standard=bool(data.get("Standard", False)),
            go_files=list(data.get("GoFiles") or []),
            cgo_files=list(data.get("CgoFiles") or []),
            ignored_go_files=list(data.get("IgnoredGoFiles") or []),
            test_go_files=list(data.get("TestGoFiles") or []),
            test_imports=list(data.get("TestImports") or []),
            xtest_go_files=list(data.get("XTestGoFiles") or []),
            xtest_imports=list(data.get("XTestImports") or []),
            error=err.get("Err", "") if isinstance(err, dict) else str(err),
        )

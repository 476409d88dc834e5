"""统一异常体系

所有业务异常继承 VendorError，CLI 层据此输出友好提示并以非零状态退出。

分类:
  - 立即中止: TransportError（子进程无法启动/等待失败）、RevisionConflict（save 期间）
  - 逐依赖汇总: DirtyWorkingTree / MissingRevision / NotInManifest / UnrecognizedRepository，
    由编排层收集后以 DependencyError / RestoreError 统一抛出
"""

from __future__ import annotations


class VendorError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(VendorError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(VendorError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class TransportError(VendorError):
    """子进程无法启动或等待失败，中止当前整个调用"""

    code = "TRANSPORT_ERROR"


class DecodeError(VendorError):
    """单条包元数据记录解析失败（挂到该包的 error 字段，不中断批次）"""

    code = "DECODE_ERROR"


class SourceParseError(VendorError):
    """源码文件头（包声明/import/构建约束）解析失败"""

    code = "SOURCE_PARSE_ERROR"


class VcsCommandError(VendorError):
    """版本控制命令执行失败"""

    code = "VCS_COMMAND_ERROR"


class RevisionConflict(VendorError):
    """同一仓库下的两个依赖要求不同版本"""

    code = "REVISION_CONFLICT"

    def __init__(self, import_path: str, have_rev: str, want_rev: str) -> None:
        super().__init__(f"{import_path}: revision is {have_rev}, want {want_rev}")
        self.import_path = import_path
        self.have_rev = have_rev
        self.want_rev = want_rev


class DirtyWorkingTree(VendorError):
    """依赖工作目录存在未提交修改"""

    code = "DIRTY_WORKING_TREE"

    def __init__(self, import_path: str, directory: str) -> None:
        super().__init__(f"{import_path}: dirty working tree: {directory}")
        self.import_path = import_path
        self.directory = directory


class MissingRevision(VendorError):
    """锁定的版本在工作区中不存在"""

    code = "MISSING_REVISION"

    def __init__(self, import_path: str, rev: str) -> None:
        super().__init__(f"{import_path}: revision {rev} not found")
        self.import_path = import_path
        self.rev = rev


class NotInManifest(VendorError):
    """指定的包不在清单中"""

    code = "NOT_IN_MANIFEST"

    def __init__(self, import_path: str) -> None:
        super().__init__(f"not in manifest: {import_path}")
        self.import_path = import_path


class UnrecognizedRepository(VendorError):
    """目录向上查找不到任何已知的版本控制标记"""

    code = "UNRECOGNIZED_REPOSITORY"

    def __init__(self, directory: str, import_path: str = "") -> None:
        label = f"{import_path}: " if import_path else ""
        super().__init__(f"{label}directory {directory!r} is not using a known version control system")
        self.directory = directory
        self.import_path = import_path


class NeedRestoreError(VendorError):
    """从旧格式迁移时工作区版本与清单不一致"""

    code = "NEED_RESTORE"


class SnapshotError(VendorError):
    """源码复制/删除过程中出现文件级错误"""

    code = "SNAPSHOT_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class DependencyError(VendorError):
    """依赖加载/更新失败（逐依赖汇总）"""

    code = "DEPENDENCY_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class RestoreError(VendorError):
    """restore 过程中部分依赖失败"""

    code = "RESTORE_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []

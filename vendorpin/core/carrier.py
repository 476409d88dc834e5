"""版本继承与差集计算

carry_versions: 把旧清单中的锁定版本带到新解析结果上，并检测同仓库冲突
sub_deps:       依赖差集（按 import path），save / update 用于计算增删
"""

from __future__ import annotations

import logging
from typing import Sequence

from vendorpin.core.exceptions import RevisionConflict
from vendorpin.core.models import Dependency, Manifest

logger = logging.getLogger(__name__)


def _related(old: Dependency, dep: Dependency) -> bool:
    """old 与 dep 是否属于同一仓库（父子目录或同仓库兄弟包）"""
    if dep.import_path.startswith(old.import_path + "/"):
        return True
    return bool(dep.root) and old.import_path.startswith(dep.root + "/")


def carry_version(old: Manifest, dep: Dependency) -> None:
    """为单个新依赖继承旧版本

    1. 旧清单中有完全相同的 import path → 继承 rev 和 comment
    2. 否则找同仓库的相关条目 → rev 必须一致，否则 RevisionConflict
    3. 无相关条目 → 新仓库，不继承

    旧条目 rev 为空（旧格式未记录版本）时既不继承也不冲突。
    """
    for od in old.deps:
        if od.import_path == dep.import_path:
            if od.rev:
                dep.rev = od.rev
                dep.comment = od.comment
            return

    related = [od for od in old.deps if od.rev and _related(od, dep)]
    if not related:
        return

    pinned = {od.rev for od in related}
    if len(pinned) > 1:
        # 旧清单自身已在同一仓库上锁定了多个版本，不隐式选择其一
        want = ", ".join(f"{od.import_path}@{od.rev}" for od in related)
        raise RevisionConflict(dep.import_path, dep.rev, want)
    for od in related:
        if od.rev != dep.rev:
            raise RevisionConflict(dep.import_path, dep.rev, od.rev)


def carry_versions(old: Manifest, new: Manifest) -> None:
    """对新清单的每个依赖执行 carry_version，遇到冲突立即抛出"""
    for dep in new.deps:
        carry_version(old, dep)


def sub_deps(a: Sequence[Dependency], b: Sequence[Dependency]) -> list[Dependency]:
    """a - b（按 import path），保持 a 的顺序"""
    exclude = {d.import_path for d in b}
    return [d for d in a if d.import_path not in exclude]


def eq_deps(a: Sequence[Dependency], b: Sequence[Dependency]) -> bool:
    """两组依赖的 import path 与 rev 是否逐项一致"""
    if len(a) != len(b):
        return False
    return all(
        x.import_path == y.import_path and x.rev == y.rev
        for x, y in zip(a, b)
    )

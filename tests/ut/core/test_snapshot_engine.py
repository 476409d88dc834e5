"""源码快照测试 — 复制 / 删除 / import 注释剥离"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from vendorpin.core.exceptions import SnapshotError
from vendorpin.core.models import Dependency
from vendorpin.core.snapshot import (
    README,
    copy_src,
    remove_src,
    strip_import_comment,
    write_readme,
    write_vcs_ignore,
)


class TestStripImportComment:
    @pytest.mark.parametrize("line,expected", [
        (b'package foo // import "bar/foo"', b"package foo"),
        (b"package foo // import `bar/foo`", b"package foo"),
        (b'package foo /* import "bar/foo" */', b"package foo"),
        (b'package foo /* import "bar/foo" */ // trailing', b"package foo // trailing"),
        (b'package foo //import "bar/foo"   ', b"package foo"),
        (b"package foo", b"package foo"),
        (b"package foo // just a comment", b"package foo // just a comment"),
        (b'package foo // import "bar/foo" extra', b'package foo // import "bar/foo" extra'),
        (b'  package foo // import "bar/foo"', b'  package foo // import "bar/foo"'),
        (b'import "fmt"', b'import "fmt"'),
        (b"", b""),
    ])
    def test_cases(self, line: bytes, expected: bytes) -> None:
        assert strip_import_comment(line) == expected


def _dep(ws: Path, import_path: str) -> Dependency:
    return Dependency(
        import_path=import_path, rev="r1",
        dir=str(ws / "src" / import_path), ws=str(ws),
    )


@pytest.fixture
def source(gopath) -> Path:
    d = gopath.package("github.com/x/lib", {
        "lib.go": 'package lib // import "github.com/x/lib"\n\nfunc A() {}\n',
        "noeol.go": "package lib\n// last line",
        "README": "hello\r\n",
        "data.bin": "",
        "sub/sub.go": "package sub\n",
        "testdata/fixture.go": "package fixture\n",
        "_examples/ex.go": "package ex\n",
        ".github/ci.yml": "on: push\n",
    }, repo=True)
    (d / "data.bin").write_bytes(bytes(range(256)))
    os.symlink("README", d / "LINK")
    os.symlink("sub", d / "sublink")
    return d


class TestCopySrc:
    def test_copy_tree(self, tmp_path: Path, gopath, source: Path) -> None:
        vendor = tmp_path / "vendor"
        copy_src(vendor, [_dep(gopath.root, "github.com/x/lib")])
        dst = vendor / "github.com/x/lib"

        assert (dst / "lib.go").read_text() == "package lib\n\nfunc A() {}\n"
        assert (dst / "noeol.go").read_bytes() == b"package lib\n// last line"
        assert (dst / "README").read_bytes() == b"hello\r\n"
        assert (dst / "data.bin").read_bytes() == bytes(range(256))
        assert (dst / "sub" / "sub.go").exists()
        for skipped in ("testdata", "_examples", ".github", ".git"):
            assert not (dst / skipped).exists()

    def test_symlinks_recreated(self, tmp_path: Path, gopath, source: Path) -> None:
        vendor = tmp_path / "vendor"
        copy_src(vendor, [_dep(gopath.root, "github.com/x/lib")])
        dst = vendor / "github.com/x/lib"
        assert (dst / "LINK").is_symlink()
        assert os.readlink(dst / "LINK") == "README"
        assert (dst / "sublink").is_symlink()
        assert os.readlink(dst / "sublink") == "sub"

    def test_stale_destination_removed(self, tmp_path: Path, gopath, source: Path) -> None:
        vendor = tmp_path / "vendor"
        stale = vendor / "github.com/x/lib" / "old.go"
        stale.parent.mkdir(parents=True)
        stale.write_text("package old\n")
        copy_src(vendor, [_dep(gopath.root, "github.com/x/lib")])
        assert not stale.exists()
        assert (vendor / "github.com/x/lib" / "lib.go").exists()

    def test_failure_is_collected(self, tmp_path: Path, gopath, source: Path) -> None:
        vendor = tmp_path / "vendor"
        blocker = vendor / "github.com/y"
        blocker.parent.mkdir(parents=True)
        blocker.write_text("a file where a directory should be")
        gopath.package("github.com/y/other", {"o.go": "package other\n"})

        with pytest.raises(SnapshotError) as exc:
            copy_src(vendor, [
                _dep(gopath.root, "github.com/y/other"),
                _dep(gopath.root, "github.com/x/lib"),
            ])
        assert any("github.com/y/other" in d for d in exc.value.details)
        assert (vendor / "github.com/x/lib" / "lib.go").exists()


class TestRemoveSrc:
    def test_copy_then_remove(self, tmp_path: Path, gopath, source: Path) -> None:
        vendor = tmp_path / "vendor"
        dep = _dep(gopath.root, "github.com/x/lib")
        copy_src(vendor, [dep])
        remove_src(vendor, [dep])
        assert not (vendor / "github.com/x/lib").exists()

    def test_absent_is_silent(self, tmp_path: Path) -> None:
        remove_src(tmp_path / "vendor", [Dependency("never/copied")])


class TestAuxFiles:
    def test_vcs_ignore(self, tmp_path: Path) -> None:
        write_vcs_ignore(tmp_path / "Godeps" / "_workspace")
        assert (tmp_path / "Godeps" / "_workspace" / ".gitignore").read_text() == "/pkg\n/bin\n"

    def test_readme(self, tmp_path: Path) -> None:
        write_readme(tmp_path / "Godeps")
        assert (tmp_path / "Godeps" / "Readme").read_text() == README

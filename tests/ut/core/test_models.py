"""数据模型测试"""

from __future__ import annotations

from vendorpin.core.models import Dependency, Manifest, ResolvedPackage


class TestDependency:
    def test_comment_omitted_when_empty(self) -> None:
        assert Dependency("a/b", rev="r1").to_dict() == {"ImportPath": "a/b", "Rev": "r1"}
        assert Dependency("a/b", rev="r1", comment="v1").to_dict() == {
            "ImportPath": "a/b", "Comment": "v1", "Rev": "r1",
        }

    def test_transient_fields_ignored_in_equality(self) -> None:
        assert Dependency("a", rev="1", dir="/x", matched=True) == Dependency("a", rev="1")


class TestManifest:
    def test_find(self) -> None:
        m = Manifest(deps=[Dependency("a"), Dependency("b", rev="2")])
        found = m.find("b")
        assert found is not None and found.rev == "2"
        assert m.find("c") is None

    def test_null_deps_read_as_empty(self) -> None:
        assert Manifest.from_dict({"ImportPath": "x", "Deps": None}).deps == []


class TestResolvedPackage:
    def test_from_record(self) -> None:
        p = ResolvedPackage.from_record({
            "ImportPath": "a",
            "Dir": "/src/a",
            "GoFiles": ["a.go"],
            "CgoFiles": ["c.go"],
            "TestGoFiles": ["a_test.go"],
            "XTestGoFiles": ["x_test.go"],
            "IgnoredGoFiles": ["gen.go"],
            "Error": {"Err": "boom"},
        })
        assert p.error == "boom"
        assert p.cgo_files == ["c.go"]
        assert p.ignored_go_files == ["gen.go"]

"""清单读写测试 — 格式判定 / 当前格式编解码 / 旧格式解析"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from vendorpin.core.config import Config
from vendorpin.core.exceptions import ValidationError
from vendorpin.core.manifest import (
    ManifestFormat,
    decode_current,
    detect_format,
    encode_manifest,
    find_manifest,
    parse_legacy_lines,
    read_manifest,
    write_manifest,
)
from vendorpin.core.models import Dependency, Manifest


def _manifest() -> Manifest:
    return Manifest(
        import_path="example.com/app",
        toolchain_version="go1.21.3",
        deps=[
            Dependency("github.com/z/last", rev="r3"),
            Dependency("github.com/a/first", rev="r1", comment="v1.0.0"),
            Dependency("github.com/m/mid", rev="r2"),
        ],
    )


class TestDetectFormat:
    def test_current(self, tmp_path: Path) -> None:
        (tmp_path / "Godeps").mkdir()
        (tmp_path / "Godeps" / "Godeps.json").write_text("{}")
        loc = detect_format(tmp_path, Config())
        assert loc.format is ManifestFormat.CURRENT
        assert loc.exists

    def test_legacy_file(self, tmp_path: Path) -> None:
        (tmp_path / "Godeps").write_text("github.com/a/b\n")
        loc = detect_format(tmp_path, Config())
        assert loc.format is ManifestFormat.LEGACY
        assert loc.path == tmp_path / "Godeps"

    def test_absent_defaults_to_current(self, tmp_path: Path) -> None:
        loc = detect_format(tmp_path, Config())
        assert loc.format is ManifestFormat.CURRENT
        assert not loc.exists
        assert read_manifest(loc) == Manifest()

    def test_find_walks_upward(self, tmp_path: Path) -> None:
        (tmp_path / "Godeps").write_text("github.com/a/b\n")
        deep = tmp_path / "cmd" / "tool"
        deep.mkdir(parents=True)
        loc = find_manifest(deep, Config())
        assert loc is not None
        assert loc.path == tmp_path / "Godeps"

    def test_find_nothing(self, tmp_path: Path) -> None:
        cfg = Config(manifest_dir="NoSuchDir", legacy_file="NoSuchFile")
        assert find_manifest(tmp_path, cfg) is None


class TestCurrentFormat:
    def test_round_trip_preserves_order(self, tmp_path: Path) -> None:
        path = tmp_path / "Godeps" / "Godeps.json"
        write_manifest(path, _manifest())
        loaded = read_manifest(detect_format(tmp_path, Config()))
        assert loaded == _manifest()
        assert [d.import_path for d in loaded.deps] == [
            "github.com/z/last", "github.com/a/first", "github.com/m/mid",
        ]

    def test_empty_deps_encode_as_list(self) -> None:
        text = encode_manifest(Manifest(import_path="x", toolchain_version="go1.21"))
        assert '"Deps": []' in text
        assert json.loads(text)["Deps"] == []
        assert "null" not in text

    def test_layout(self) -> None:
        m = _manifest()
        m.packages = ["./cmd/..."]
        text = encode_manifest(m)
        data = json.loads(text)
        assert list(data) == ["ImportPath", "GoVersion", "Packages", "Deps"]
        assert data["Deps"][0] == {"ImportPath": "github.com/z/last", "Rev": "r3"}
        assert data["Deps"][1]["Comment"] == "v1.0.0"
        assert text.startswith('{\n\t"ImportPath"')
        assert text.endswith("}\n")

    def test_packages_omitted_without_args(self) -> None:
        assert "Packages" not in json.loads(encode_manifest(_manifest()))

    @pytest.mark.parametrize("text", ["{", "[]", '{"Deps": {}}'])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(ValidationError):
            decode_current(text)

    def test_non_object_entry(self) -> None:
        text = json.dumps({"ImportPath": "p", "Deps": ["github.com/x/y"]})
        with pytest.raises(ValidationError, match="Godeps.json") as exc:
            decode_current(text, "Godeps.json")
        assert exc.value.details == ["0"]

    def test_duplicate_import_path(self) -> None:
        text = json.dumps({"Deps": [{"ImportPath": "a", "Rev": "1"}, {"ImportPath": "a", "Rev": "2"}]})
        with pytest.raises(ValidationError) as exc:
            decode_current(text)
        assert exc.value.details == ["a"]


class TestLegacyFormat:
    def test_comments_and_blank_lines(self) -> None:
        deps = parse_legacy_lines([
            "# header comment",
            "",
            "github.com/a/b   abc123  # pinned",
            "github.com/c/d // no rev",
            "   ",
            "// all comment",
        ])
        assert [(d.import_path, d.rev) for d in deps] == [
            ("github.com/a/b", "abc123"),
            ("github.com/c/d", ""),
        ]

    def test_read_legacy_file(self, tmp_path: Path) -> None:
        (tmp_path / "Godeps").write_text("github.com/a/b abc\ngithub.com/c/d\n")
        m = read_manifest(detect_format(tmp_path, Config()))
        assert m.import_path == ""
        assert [d.import_path for d in m.deps] == ["github.com/a/b", "github.com/c/d"]

    def test_write_back_legacy(self, tmp_path: Path) -> None:
        path = tmp_path / "Godeps"
        m = Manifest(deps=[Dependency("a/b", rev="r1"), Dependency("c/d")])
        write_manifest(path, m, ManifestFormat.LEGACY)
        assert path.read_text() == "a/b r1\nc/d\n"

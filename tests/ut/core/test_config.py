"""配置加载测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from vendorpin.core.config import Config
from vendorpin.core.exceptions import ConfigError


class TestConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        cfg = Config.from_file(tmp_path / "absent.yml")
        assert cfg.manifest_path == Path("Godeps") / "Godeps.json"
        assert cfg.vendor_root == Path("Godeps/_workspace/src")

    def test_load_with_extra(self, tmp_path: Path) -> None:
        p = tmp_path / "c.yml"
        p.write_text("vendor_experiment: true\nbuild_tags: integration\nteam: infra\n")
        cfg = Config.from_file(p)
        assert cfg.vendor_root == Path("vendor")
        assert cfg.build_tags == "integration"
        assert cfg.extra == {"team": "infra"}

    @pytest.mark.parametrize("text", ["max_workers: 0\n", "max_workers: [1\n"])
    def test_invalid(self, tmp_path: Path, text: str) -> None:
        p = tmp_path / "c.yml"
        p.write_text(text)
        with pytest.raises(ConfigError):
            Config.from_file(p)

    def test_overrides_ignore_none(self) -> None:
        cfg = Config(build_tags="a")
        assert cfg.with_overrides(build_tags=None).build_tags == "a"
        assert cfg.with_overrides(build_tags="b").build_tags == "b"
        assert cfg.build_tags == "a"

    def test_env_platform(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GOOS", "plan9")
        monkeypatch.setenv("GOARCH", "arm")
        monkeypatch.setenv("CGO_ENABLED", "0")
        cfg = Config()
        assert (cfg.goos, cfg.goarch, cfg.cgo_enabled) == ("plan9", "arm", False)

    def test_to_dict(self) -> None:
        data = Config(go_cmd="go1.22").to_dict()
        assert data["go_cmd"] == "go1.22"
        assert data["manifest_dir"] == "Godeps"

"""Tests for uxcheck.config: loading, validation and skip patterns."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from uxcheck.config import (
    DEFAULT_BREAKPOINTS,
    config_exists,
    load_config,
    load_global_config,
    should_skip_route,
)
from uxcheck.errors import ConfigurationError


def _write(tmp_path: Path, data: object) -> None:
    (tmp_path / ".ux-test.json").write_text(json.dumps(data))


class TestLoadConfig:
    """Tests for load_config()."""

    def test_missing_file_returns_none(self, tmp_path: Path) -> None:
        assert load_config(tmp_path) is None

    def test_defaults_applied(self, tmp_path: Path) -> None:
        _write(tmp_path, {"port": 3000})
        config = load_config(tmp_path)

        assert config is not None
        assert config.port == 3000
        assert config.routes is None
        assert config.skip_routes == []
        assert config.flows == []
        assert config.breakpoints == list(DEFAULT_BREAKPOINTS)
        assert config.visual_threshold == 0.1
        assert config.visual is True
        assert config.a11y is True
        assert config.identity is None
        assert config.project_dir == tmp_path.resolve()
        assert config.origin == "http://localhost:3000"

    def test_camel_case_keys(self, tmp_path: Path) -> None:
        _write(
            tmp_path,
            {
                "port": 8080,
                "startCommand": "npm run dev",
                "skipRoutes": ["/admin/*"],
                "visualThreshold": 2.5,
                "a11yRules": {"disable": ["color-contrast"], "exclude": ["#ads"]},
                "identity": {
                    "url": "https://abc.supabase.co",
                    "serviceRoleKey": "service",
                    "anonKey": "anon",
                    "storageKey": "sb-abc-auth-token",
                    "storageType": "cookie",
                },
            },
        )
        config = load_config(tmp_path)

        assert config is not None
        assert config.start_command == "npm run dev"
        assert config.skip_routes == ["/admin/*"]
        assert config.visual_threshold == 2.5
        assert config.a11y_rules is not None
        assert config.a11y_rules.disable == ["color-contrast"]
        assert config.a11y_rules.exclude == ["#ads"]
        assert config.identity is not None
        assert config.identity.storage_type == "cookie"

    def test_flows_parsed(self, tmp_path: Path) -> None:
        _write(
            tmp_path,
            {
                "port": 3000,
                "flows": [
                    {
                        "name": "Home",
                        "steps": [
                            {"action": "navigate", "url": "/"},
                            {"action": "somethingNew"},
                        ],
                    }
                ],
            },
        )
        config = load_config(tmp_path)

        assert config is not None
        assert config.flows[0].name == "Home"
        assert [s.action for s in config.flows[0].steps] == ["navigate", "somethingNew"]

    def test_invalid_json(self, tmp_path: Path) -> None:
        (tmp_path / ".ux-test.json").write_text("{not json")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_config(tmp_path)

    def test_port_required(self, tmp_path: Path) -> None:
        _write(tmp_path, {"routes": ["/"]})
        with pytest.raises(ConfigurationError, match="port"):
            load_config(tmp_path)

    def test_port_must_be_number(self, tmp_path: Path) -> None:
        _write(tmp_path, {"port": "3000"})
        with pytest.raises(ConfigurationError, match="port"):
            load_config(tmp_path)

    def test_breakpoints_must_be_positive(self, tmp_path: Path) -> None:
        _write(tmp_path, {"port": 3000, "breakpoints": [375, 0]})
        with pytest.raises(ConfigurationError, match="breakpoints"):
            load_config(tmp_path)

    def test_threshold_range(self, tmp_path: Path) -> None:
        _write(tmp_path, {"port": 3000, "visualThreshold": 101})
        with pytest.raises(ConfigurationError, match="visualThreshold"):
            load_config(tmp_path)

    def test_a11y_must_be_boolean(self, tmp_path: Path) -> None:
        _write(tmp_path, {"port": 3000, "a11y": "yes"})
        with pytest.raises(ConfigurationError, match="a11y"):
            load_config(tmp_path)

    def test_a11y_rules_unknown_keys_rejected(self, tmp_path: Path) -> None:
        _write(tmp_path, {"port": 3000, "a11yRules": {"disable": [], "ignore": ["x"]}})
        with pytest.raises(ConfigurationError, match="ignore"):
            load_config(tmp_path)

    def test_top_level_must_be_object(self, tmp_path: Path) -> None:
        _write(tmp_path, [1, 2])
        with pytest.raises(ConfigurationError, match="object"):
            load_config(tmp_path)

    def test_config_is_frozen(self, tmp_path: Path) -> None:
        _write(tmp_path, {"port": 3000})
        config = load_config(tmp_path)
        assert config is not None
        with pytest.raises(ValueError):
            config.port = 4000  # type: ignore[misc]


class TestGlobalConfig:
    """Tests for load_global_config() and config_exists()."""

    def test_reads_scan_dirs(self, tmp_path: Path) -> None:
        path = tmp_path / "global.json"
        path.write_text(json.dumps({"scanDirs": ["~/code"]}))
        config = load_global_config(path)
        assert config is not None
        assert config.scan_dirs == ["~/code"]

    def test_missing_returns_none(self, tmp_path: Path) -> None:
        assert load_global_config(tmp_path / "nope.json") is None

    def test_invalid_returns_none(self, tmp_path: Path) -> None:
        path = tmp_path / "global.json"
        path.write_text("{broken")
        assert load_global_config(path) is None

    def test_config_exists(self, tmp_path: Path) -> None:
        assert config_exists(tmp_path) is False
        _write(tmp_path, {"port": 1})
        assert config_exists(tmp_path) is True


class TestShouldSkipRoute:
    """Tests for should_skip_route()."""

    def test_exact_match(self) -> None:
        assert should_skip_route("/admin", ["/admin"])
        assert not should_skip_route("/admin/users", ["/admin"])

    def test_prefix_pattern(self) -> None:
        assert should_skip_route("/admin/users", ["/admin/*"])
        assert should_skip_route("/admin/", ["/admin/*"])
        assert not should_skip_route("/administrator", ["/admin/*"])

    def test_wildcard_pattern(self) -> None:
        assert should_skip_route("/blog/2024/post", ["/blog/*/post"])
        assert not should_skip_route("/blog/2024/post/edit", ["/blog/*/post"])

    def test_wildcard_escapes_regex_characters(self) -> None:
        assert should_skip_route("/file.html", ["/*.html"])
        assert not should_skip_route("/fileXhtml", ["/*.html"])

    def test_no_patterns(self) -> None:
        assert not should_skip_route("/", [])

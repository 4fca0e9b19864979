"""Tests for config/loader.py module.

Covers:
- _load_yaml() function
- _deep_merge() function
- load_config() precedence
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from driftflow.config import loader
from driftflow.config.loader import _deep_merge, _load_yaml, load_config
from driftflow.config.models import DriftFlowConfig
from driftflow.core.errors import ConfigError, ErrorCode


@pytest.fixture(autouse=True)
def no_global_config(tmp_path: Path):
    """Point the global config at a file that does not exist."""
    with patch.object(loader, "GLOBAL_CONFIG_PATH", tmp_path / "global" / "config.yaml"):
        yield


def write_project_config(root: Path, text: str) -> None:
    config_dir = root / ".flow"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "config.yaml").write_text(text)


class TestLoadYaml:
    """Tests for _load_yaml function."""

    def test_returns_empty_dict_for_missing_file(self, tmp_path: Path) -> None:
        """Returns empty dict when file doesn't exist."""
        assert _load_yaml(tmp_path / "nonexistent.yaml") == {}

    def test_loads_valid_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text("logging:\n  level: DEBUG\n")

        assert _load_yaml(yaml_file) == {"logging": {"level": "DEBUG"}}

    def test_returns_empty_for_yaml_null(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "null.yaml"
        yaml_file.write_text("null\n")

        assert _load_yaml(yaml_file) == {}

    def test_raises_config_error_for_invalid_yaml(self, tmp_path: Path) -> None:
        """Raises ConfigError for invalid YAML syntax."""
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("logging:\n  level:\n    - invalid: [unclosed")

        with pytest.raises(ConfigError) as exc_info:
            _load_yaml(yaml_file)
        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_raises_config_error_for_non_mapping(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            _load_yaml(yaml_file)


class TestDeepMerge:
    """Tests for _deep_merge function."""

    def test_override_wins(self) -> None:
        assert _deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_merge(self) -> None:
        """Nested dicts are merged key by key."""
        base = {"enhancements": {"enable_safety": True, "enable_speed": True}}
        override = {"enhancements": {"enable_speed": False}}

        assert _deep_merge(base, override) == {
            "enhancements": {"enable_safety": True, "enable_speed": False}
        }

    def test_does_not_mutate_base(self) -> None:
        base = {"a": {"b": 1}}
        _deep_merge(base, {"a": {"b": 2}})
        assert base == {"a": {"b": 1}}


class TestLoadConfig:
    """Tests for load_config precedence."""

    def test_defaults(self, tmp_path: Path) -> None:
        """With no files and no env, built-in defaults apply."""
        config = load_config(tmp_path)

        assert isinstance(config, DriftFlowConfig)
        assert config.logging.level == "WARNING"
        assert config.enhancements.enable_safety is True
        assert config.enhancements.auto_approve is False
        assert config.migrations.path == "migrations"

    def test_project_yaml(self, tmp_path: Path) -> None:
        write_project_config(
            tmp_path,
            "enhancements:\n  enable_speed: false\n  disabled_enhancements:\n"
            "    - safety-backup-recommendation\n",
        )

        config = load_config(tmp_path)

        assert config.enhancements.enable_speed is False
        assert config.enhancements.disabled_enhancements == ["safety-backup-recommendation"]

    def test_project_yaml_overrides_global(self, tmp_path: Path) -> None:
        global_path = tmp_path / "global" / "config.yaml"
        global_path.parent.mkdir(parents=True)
        global_path.write_text("migrations:\n  path: db/global\nlogging:\n  level: INFO\n")
        write_project_config(tmp_path, "migrations:\n  path: db/migrations\n")

        with patch.object(loader, "GLOBAL_CONFIG_PATH", global_path):
            config = load_config(tmp_path)

        assert config.migrations.path == "db/migrations"
        assert config.logging.level == "INFO"

    def test_env_overrides_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        write_project_config(tmp_path, "enhancements:\n  auto_approve: false\n")
        monkeypatch.setenv("DRIFTFLOW__ENHANCEMENTS__AUTO_APPROVE", "true")

        config = load_config(tmp_path)

        assert config.enhancements.auto_approve is True

    def test_kwargs_override_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DRIFTFLOW__LOGGING__LEVEL", "ERROR")

        config = load_config(tmp_path, logging={"level": "DEBUG"})

        assert config.logging.level == "DEBUG"

    def test_invalid_value_raises_config_error(self, tmp_path: Path) -> None:
        write_project_config(
            tmp_path, "enhancements:\n  custom_priorities:\n    safety-drop-table: 500\n"
        )

        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path)
        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_VALUE

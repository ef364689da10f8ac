"""Tests for configuration schema and .speck/config.json persistence"""
import json

import pytest

from speck.config import (
    FileRule,
    SpeckConfig,
    default_speck_config,
    minimal_speck_config,
    parse_speck_config,
)
from speck.exceptions import ConfigError, ConfigValidationError
from speck.services.config_store import get_config_path, load_config, migrate_config, save_config


def write_config(root, data):
    config_dir = root / ".speck"
    config_dir.mkdir(exist_ok=True)
    path = config_dir / "config.json"
    path.write_text(data if isinstance(data, str) else json.dumps(data))
    return path


class TestLoadConfig:
    """Test loading configuration."""

    def test_missing_file_returns_defaults(self, temp_dir):
        config = load_config(str(temp_dir))
        assert config == default_speck_config()
        assert config.worktree.enabled is True
        assert config.worktree.worktree_path == "../"
        assert config.worktree.ide.editor == "vscode"
        assert config.worktree.dependencies.package_manager == "auto"
        assert FileRule("node_modules", "symlink") in config.file_rules

    def test_partial_document_gets_defaults(self, temp_dir):
        write_config(temp_dir, {"version": "1.0", "worktree": {"ide": {"autoLaunch": True}}})
        config = load_config(str(temp_dir))
        assert config.worktree.ide.auto_launch is True
        assert config.worktree.ide.editor == "vscode"
        assert config.worktree.ide.new_window is True
        assert config.worktree.files.include_untracked is True

    def test_unknown_keys_ignored(self, temp_dir):
        write_config(temp_dir, {"version": "1.0", "extra": 1, "worktree": {"mystery": True}})
        assert load_config(str(temp_dir)).worktree.enabled is True

    def test_malformed_json_includes_path(self, temp_dir):
        path = write_config(temp_dir, "{not json")
        with pytest.raises(ConfigError) as exc_info:
            load_config(str(temp_dir))
        assert str(path) in exc_info.value.message
        assert exc_info.value.path == str(path)
        assert exc_info.value.code == "CONFIG_ERROR"

    def test_schema_errors_are_all_reported(self, temp_dir):
        write_config(
            temp_dir,
            {
                "version": "1.0",
                "worktree": {
                    "enabled": "yes",
                    "ide": {"editor": "notepad"},
                    "files": {"rules": [{"pattern": "*.txt", "action": "move"}]},
                },
            },
        )
        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(str(temp_dir))

        errors = exc_info.value.validation_errors
        assert len(errors) == 3
        assert any("worktree.enabled" in e for e in errors)
        assert any("worktree.ide.editor" in e for e in errors)
        assert any("worktree.files.rules.0.action" in e for e in errors)
        assert "Invalid configuration in .speck/config.json" in exc_info.value.message

    def test_outdated_version_rejected(self, temp_dir):
        write_config(temp_dir, {"version": "0.9", "worktree": {}})
        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(str(temp_dir))
        assert "0.9" in exc_info.value.message


class TestSaveConfig:
    """Test writing configuration."""

    def test_round_trip_is_idempotent(self, temp_dir):
        first = load_config(str(temp_dir))
        save_config(str(temp_dir), first)
        second = load_config(str(temp_dir))
        assert second == first

        save_config(str(temp_dir), second)
        assert load_config(str(temp_dir)) == first

    def test_format_and_location(self, temp_dir):
        save_config(str(temp_dir), minimal_speck_config())
        path = get_config_path(str(temp_dir))
        content = path.read_text()

        assert path == temp_dir / ".speck" / "config.json"
        assert content.endswith("}\n")
        assert '\n  "version": "1.0"' in content
        assert "branchPrefix" not in content
        assert not path.with_suffix(".tmp").exists()

    def test_branch_prefix_persisted(self, temp_dir):
        config = default_speck_config()
        config.worktree.branch_prefix = "alice/"
        save_config(str(temp_dir), config)
        assert load_config(str(temp_dir)).worktree.branch_prefix == "alice/"

    def test_invalid_config_not_written(self, temp_dir):
        config = SpeckConfig()
        config.worktree.ide.editor = "notepad"
        with pytest.raises(ConfigValidationError):
            save_config(str(temp_dir), config)
        assert not get_config_path(str(temp_dir)).exists()


class TestMigrateConfig:
    """Test schema migration."""

    def test_absent_file(self, temp_dir):
        assert migrate_config(str(temp_dir)) is False

    def test_current_version_untouched(self, temp_dir):
        save_config(str(temp_dir), default_speck_config())
        assert migrate_config(str(temp_dir)) is False

    def test_old_version_restamped(self, temp_dir):
        write_config(temp_dir, {"version": "0.9", "worktree": {"branchPrefix": "bob"}})
        assert migrate_config(str(temp_dir)) is True

        config = load_config(str(temp_dir))
        assert config.version == "1.0"
        assert config.worktree.branch_prefix == "bob"


class TestParseSpeckConfig:
    """Test direct document validation."""

    def test_non_object_document(self):
        with pytest.raises(ConfigValidationError):
            parse_speck_config(["not", "an", "object"])

    def test_empty_pattern(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            parse_speck_config({"worktree": {"files": {"rules": [{"pattern": "", "action": "copy"}]}}})
        assert any("rules.0.pattern" in e for e in exc_info.value.validation_errors)

    def test_to_dict_uses_json_field_names(self):
        data = default_speck_config().to_dict()
        assert data["worktree"]["ide"] == {"autoLaunch": False, "editor": "vscode", "newWindow": True}
        assert data["worktree"]["dependencies"] == {"autoInstall": False, "packageManager": "auto"}
        assert data["worktree"]["files"]["includeUntracked"] is True

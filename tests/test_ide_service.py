"""Tests for IDE detection and launch"""
import subprocess
from unittest.mock import patch

import pytest

from speck.services.ide_service import (
    detect_available_ides,
    get_ide_command,
    is_ide_available,
    launch_ide,
)


def which_only(*commands):
    return lambda command: f"/usr/local/bin/{command}" if command in commands else None


class TestDetection:
    """Test PATH probing."""

    def test_is_ide_available(self):
        with patch("shutil.which", side_effect=which_only("code")):
            assert is_ide_available("code") is True
            assert is_ide_available("cursor") is False

    def test_detect_available_ides(self):
        with patch("shutil.which", side_effect=which_only("cursor", "pycharm")):
            ides = detect_available_ides()
        assert [ide.editor for ide in ides] == ["cursor", "pycharm"]
        assert ides[0].args == ["-n"]
        assert ides[1].args == ["nosplash"]
        assert all(ide.available for ide in ides)

    def test_none_available(self):
        with patch("shutil.which", return_value=None):
            assert detect_available_ides() == []


class TestCommand:
    """Test command construction."""

    def test_vscode_new_window(self):
        assert get_ide_command("vscode", "/w") == ["code", "-n", "/w"]

    def test_vscode_same_window(self):
        assert get_ide_command("vscode", "/w", new_window=False) == ["code", "/w"]

    def test_jetbrains_nosplash(self):
        assert get_ide_command("webstorm", "/w") == ["webstorm", "nosplash", "/w"]
        assert get_ide_command("idea", "/w", new_window=False) == ["idea", "nosplash", "/w"]

    def test_unknown_editor(self):
        with pytest.raises(ValueError):
            get_ide_command("notepad", "/w")


class TestLaunch:
    """Test fire-and-forget launch."""

    def test_detached_launch(self, temp_dir):
        with patch("shutil.which", side_effect=which_only("code")), \
                patch("subprocess.Popen") as mock_popen:
            result = launch_ide(str(temp_dir), "vscode")

        assert result.success is True
        assert result.command == f"code -n {temp_dir}"
        kwargs = mock_popen.call_args[1]
        assert kwargs["stdout"] == subprocess.DEVNULL
        assert kwargs["stderr"] == subprocess.DEVNULL
        assert kwargs["stdin"] == subprocess.DEVNULL
        assert kwargs["start_new_session"] is True
        mock_popen.return_value.wait.assert_not_called()

    def test_unavailable_command(self, temp_dir):
        with patch("shutil.which", return_value=None), patch("subprocess.Popen") as mock_popen:
            result = launch_ide(str(temp_dir), "cursor")
        mock_popen.assert_not_called()
        assert result.success is False
        assert "not available in PATH" in result.error

    def test_spawn_error_is_reported_not_raised(self, temp_dir):
        with patch("shutil.which", side_effect=which_only("idea")), \
                patch("subprocess.Popen", side_effect=PermissionError("denied")):
            result = launch_ide(str(temp_dir), "idea")
        assert result.success is False
        assert "denied" in result.error

    def test_unknown_editor(self, temp_dir):
        result = launch_ide(str(temp_dir), "notepad")
        assert result.success is False
        assert result.to_dict()["error"] == "Unknown IDE editor: notepad"

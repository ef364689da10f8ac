"""Tests for the speck-worktree command line"""
import json
import os
from unittest.mock import patch

import pytest

from speck.cli.args import parse_args
from speck.cli.main import main
from speck.config import IDEConfig, default_speck_config
from speck.models.operations import IDEInfo, IDELaunchResult
from speck.services.config_store import load_config, save_config


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep pytest's log capture handlers in place."""
    with patch("speck.cli.main.setup_logging"):
        yield


def run_json(capsys, *argv):
    code = main(list(argv) + ["--json"])
    return code, json.loads(capsys.readouterr().out)


class TestArgs:
    """Test argument parsing."""

    def test_create_flags(self):
        args = parse_args(["create", "--branch", "012-x", "--no-ide", "--no-deps", "--reuse"])
        assert args.command == "create"
        assert args.branch == "012-x"
        assert args.no_ide and args.no_deps and args.reuse
        assert args.repo_path == "."
        assert args.json is False

    def test_global_flags(self):
        args = parse_args(["--debug", "-v", "list", "--verbose"])
        assert args.debug is True
        assert args.verbose is True
        assert args.list_verbose is True

    def test_init_modes_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["init", "--defaults", "--minimal"])

    def test_branch_required(self):
        with pytest.raises(SystemExit):
            parse_args(["remove"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "speck-worktree" in capsys.readouterr().out


class TestCreateCommand:
    """Test `create`."""

    def test_create_json(self, repo_path, temp_dir, capsys):
        code, data = run_json(capsys, "create", "--branch", "012-worktree", "--repo-path", repo_path)
        assert code == 0
        assert data["success"] is True
        assert data["worktreePath"] == str(temp_dir / "test-repo-012-worktree")
        assert data["metadata"]["status"] == "ready"

    def test_create_text(self, repo_path, capsys):
        code = main(["create", "--branch", "012-worktree", "--repo-path", repo_path])
        assert code == 0
        assert "✓ Created worktree for branch 012-worktree" in capsys.readouterr().out

    def test_missing_branch_json(self, repo_path, capsys):
        code, data = run_json(capsys, "create", "--branch", "999-nope", "--repo-path", repo_path)
        assert code == 1
        assert data["success"] is False
        assert "does not exist" in data["error"]

    def test_missing_branch_text_goes_to_stderr(self, repo_path, capsys):
        code = main(["create", "--branch", "999-nope", "--repo-path", repo_path])
        captured = capsys.readouterr()
        assert code == 1
        assert "✗" in captured.err
        assert captured.out == ""

    def test_disabled_worktrees_skip(self, repo_path, temp_dir, capsys):
        config = default_speck_config()
        config.worktree.enabled = False
        save_config(repo_path, config)

        code, data = run_json(capsys, "create", "--branch", "012-worktree", "--repo-path", repo_path)

        assert code == 0
        assert data["skipped"] is True
        assert not os.path.exists(temp_dir / "test-repo-012-worktree")


class TestRemoveListPrune:
    """Test `remove`, `list` and `prune`."""

    def test_remove_without_worktree(self, repo_path, capsys):
        code, data = run_json(capsys, "remove", "--branch", "012-worktree", "--repo-path", repo_path)
        assert code == 1
        assert data == {"success": False, "error": "No worktree found for branch '012-worktree'"}

    def test_create_list_remove(self, repo_path, temp_dir, capsys):
        sibling = str(temp_dir / "test-repo-012-worktree")
        main(["create", "--branch", "012-worktree", "--repo-path", repo_path, "--json"])
        capsys.readouterr()

        code, data = run_json(capsys, "list", "--repo-path", repo_path)
        assert code == 0
        assert [wt["branch"] for wt in data["worktrees"]] == ["main", "012-worktree"]

        code, data = run_json(capsys, "remove", "--branch", "012-worktree", "--repo-path", repo_path)
        assert code == 0
        assert data["success"] is True
        assert data["worktreePath"] == sibling
        assert not os.path.exists(sibling)

    def test_list_text(self, repo_path, capsys):
        code = main(["list", "--repo-path", repo_path, "--verbose"])
        output = capsys.readouterr().out
        assert code == 0
        assert "Found 1 worktree(s)" in output
        assert "main" in output

    def test_prune_dry_run(self, git_repo_with_branches, repo_path, temp_dir, capsys):
        import shutil

        stale = str(temp_dir / "stale")
        git_repo_with_branches.git.worktree("add", stale, "feature/login")
        shutil.rmtree(stale)

        code, data = run_json(capsys, "prune", "--repo-path", repo_path, "--dry-run")

        assert code == 0
        assert data["dryRun"] is True
        assert data["prunedPaths"] == [stale]

    def test_prune_nothing(self, repo_path, capsys):
        assert main(["prune", "--repo-path", repo_path]) == 0
        assert "No stale worktrees found" in capsys.readouterr().out


class TestInitCommand:
    """Test `init`."""

    def test_minimal(self, repo_path, capsys):
        code, data = run_json(capsys, "init", "--repo-path", repo_path, "--minimal")
        assert code == 0
        assert data["mode"] == "minimal"
        assert load_config(repo_path).worktree.files.rules == []

    def test_defaults_detect_tools(self, repo_path, capsys):
        with open(os.path.join(repo_path, "yarn.lock"), "w") as f:
            f.write("")
        cursor = IDEInfo(editor="cursor", name="Cursor", command="cursor", args=["-n"], available=True)

        with patch("speck.cli.commands.detect_available_ides", return_value=[cursor]):
            code, data = run_json(capsys, "init", "--repo-path", repo_path, "--defaults")

        assert code == 0
        config = load_config(repo_path)
        assert config.worktree.ide.editor == "cursor"
        assert config.worktree.dependencies.package_manager == "yarn"
        assert data["config"]["worktree"]["ide"]["editor"] == "cursor"

    def test_wizard_disable(self, repo_path, capsys):
        with patch("speck.cli.commands.Confirm.ask", return_value=False):
            code = main(["init", "--repo-path", repo_path])
        assert code == 0
        assert load_config(repo_path).worktree.enabled is False

    def test_wizard_answers(self, repo_path, capsys):
        confirms = iter([True, True, False, False, False, True, False])
        prompts = iter(["../", "carol"])
        with patch("speck.cli.commands.detect_available_ides", return_value=[]), \
                patch("speck.cli.commands.Confirm.ask", side_effect=lambda *a, **k: next(confirms)), \
                patch("speck.cli.commands.Prompt.ask", side_effect=lambda *a, **k: next(prompts)):
            code = main(["init", "--repo-path", repo_path])

        config = load_config(repo_path)
        assert code == 0
        assert config.worktree.branch_prefix == "carol"
        assert config.worktree.ide.auto_launch is False
        assert config.worktree.ide.new_window is False
        assert config.worktree.files.include_untracked is False
        assert [r.pattern for r in config.worktree.files.rules] == [".env*", "node_modules", ".git"]

    def test_migrates_old_config(self, repo_path, capsys):
        os.makedirs(os.path.join(repo_path, ".speck"))
        with open(os.path.join(repo_path, ".speck", "config.json"), "w") as f:
            json.dump({"version": "0.9", "worktree": {}}, f)

        assert main(["init", "--repo-path", repo_path, "--minimal"]) == 0
        assert "Migrated" in capsys.readouterr().out
        assert load_config(repo_path).version == "1.0"


class TestLaunchIdeCommand:
    """Test `launch-ide`."""

    def test_disabled_is_skipped(self, repo_path, capsys):
        code, data = run_json(capsys, "launch-ide", "--worktree-path", repo_path, "--repo-path", repo_path)
        assert code == 0
        assert data["skipped"] is True

    def test_failure_does_not_fail_command(self, repo_path, capsys):
        config = default_speck_config()
        config.worktree.ide = IDEConfig(auto_launch=True, editor="webstorm")
        save_config(repo_path, config)
        failed = IDELaunchResult(success=False, editor="webstorm", command="webstorm", error="missing")

        with patch("speck.cli.commands.launch_ide", return_value=failed) as mock_launch:
            code = main(["launch-ide", "--worktree-path", repo_path, "--repo-path", repo_path])

        assert code == 0
        mock_launch.assert_called_once_with(repo_path, "webstorm", True)
        assert "IDE launch failed" in capsys.readouterr().err

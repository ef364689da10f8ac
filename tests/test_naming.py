"""Tests for worktree naming and path construction"""
import os
import re

import pytest

from speck.exceptions import InvalidBranchNameError
from speck.models.worktree import RepoLayout
from speck.services.naming import (
    construct_branch_name,
    construct_worktree_dir_name,
    construct_worktree_path,
    detect_repo_layout,
    get_repo_name,
    slugify_branch_name,
)
from speck.services.validation_service import ValidationService


class TestSlugifyBranchName:
    """Test branch name slugs."""

    @pytest.mark.parametrize(
        "branch,expected",
        [
            ("012-worktree", "012-worktree"),
            ("feature/Login", "feature-login"),
            ("user/feat/x", "user-feat-x"),
            ("Fix_Bug#12", "fix_bug-12"),
            ("a--b", "a-b"),
            ("release+1.2", "release-1-2"),
        ],
    )
    def test_slugs(self, branch, expected):
        assert slugify_branch_name(branch) == expected

    @pytest.mark.parametrize(
        "branch",
        ["feature/ünïcode", "a.b.c", "x_y", "UPPER/Case", "trail-x", "1/2/3", "weird!name%"],
    )
    def test_valid_branches_give_safe_slugs(self, branch):
        assert ValidationService.is_valid_branch_name(branch)
        slug = slugify_branch_name(branch)
        assert re.fullmatch(r"[a-z0-9\-_]*", slug)
        assert not slug.startswith("-")
        assert not slug.endswith("-")


class TestRepoName:
    """Test repository name detection."""

    def test_name_from_remote(self, git_repo):
        assert get_repo_name(git_repo.working_dir) == "test-repo"

    def test_https_remote(self, git_repo):
        git_repo.remote("origin").set_url("https://github.com/acme/widgets.git")
        assert get_repo_name(git_repo.working_dir) == "widgets"

    def test_falls_back_to_directory(self, git_repo):
        git_repo.delete_remote("origin")
        assert get_repo_name(git_repo.working_dir) == "test_repo"


class TestRepoLayout:
    """Test layout detection."""

    def test_repo_name_layout(self, git_repo):
        assert detect_repo_layout(git_repo.working_dir) == RepoLayout.REPO_NAME_DIR

    def test_branch_name_layout(self, git_repo, temp_dir):
        checkout = temp_dir / "main"
        os.rename(git_repo.working_dir, checkout)
        assert detect_repo_layout(str(checkout)) == RepoLayout.BRANCH_NAME_DIR
        assert construct_worktree_dir_name(str(checkout), "012-worktree") == "012-worktree"

    def test_not_a_repository(self, temp_dir):
        assert detect_repo_layout(str(temp_dir)) == RepoLayout.REPO_NAME_DIR


class TestWorktreePath:
    """Test sibling path construction."""

    def test_sibling_of_repository(self, git_repo):
        path = construct_worktree_path(git_repo.working_dir, "012-worktree")
        parent = os.path.dirname(git_repo.working_dir)
        assert path == os.path.join(parent, "test-repo-012-worktree")
        assert not path.startswith(git_repo.working_dir + os.sep)

    def test_nested_branch_name(self, git_repo):
        path = construct_worktree_path(git_repo.working_dir, "feature/Login")
        assert os.path.basename(path) == "test-repo-feature-login"

    @pytest.mark.parametrize("branch", ["日本", "---", "//"])
    def test_branch_without_usable_characters(self, git_repo, branch):
        with pytest.raises(InvalidBranchNameError):
            construct_worktree_path(git_repo.working_dir, branch)


class TestBranchPrefix:
    """Test branch prefixes."""

    def test_no_prefix(self):
        assert construct_branch_name("012-worktree") == "012-worktree"
        assert construct_branch_name("012-worktree", "") == "012-worktree"

    def test_prefix_slash_added(self):
        assert construct_branch_name("012-worktree", "alice") == "alice/012-worktree"
        assert construct_branch_name("012-worktree", "alice/") == "alice/012-worktree"

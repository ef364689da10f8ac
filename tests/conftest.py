"""Pytest fixtures for speck tests"""
import tempfile
from pathlib import Path
import pytest
import git

from speck.config import DependencyConfig, FileConfig, IDEConfig, SpeckConfig, WorktreeConfig
from speck.core.progress import ProgressChannel, ProgressRecorder


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        # git reports resolved paths; resolve here so comparisons line up
        yield Path(tmpdir).resolve()


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    # Initialize repository
    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    # Create initial commit on main branch
    (repo_path / "README.md").write_text("# Test Repository\n")
    (repo_path / "package.json").write_text('{"name": "test-repo"}\n')
    (repo_path / ".gitignore").write_text("node_modules/\n.env.local\n")
    repo.index.add(["README.md", "package.json", ".gitignore"])
    repo.index.commit("Initial commit")
    repo.git.branch("-M", "main")

    # Remote gives the repository a stable name for worktree directories
    repo.create_remote("origin", "git@github.com:test/test-repo.git")

    yield repo

    # Cleanup
    repo.close()


@pytest.fixture
def git_repo_with_branches(git_repo):
    """Create a Git repository with feature branches that have no worktree yet."""
    git_repo.git.branch("012-worktree")
    git_repo.git.branch("feature/login")
    yield git_repo


@pytest.fixture
def repo_path(git_repo_with_branches):
    """Path of the main checkout as a string."""
    return str(git_repo_with_branches.working_dir)


@pytest.fixture
def quiet_config():
    """Configuration with file rules only: no IDE launch, no dependency install."""
    return SpeckConfig(
        worktree=WorktreeConfig(
            ide=IDEConfig(auto_launch=False),
            dependencies=DependencyConfig(auto_install=False),
            files=FileConfig(rules=[], include_untracked=False),
        )
    )


@pytest.fixture
def recorder():
    """Progress channel with a recorder subscribed."""
    channel = ProgressChannel()
    events = ProgressRecorder()
    channel.subscribe(events)
    return channel, events

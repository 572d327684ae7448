import shutil
import subprocess
from dataclasses import dataclass, field

import pytest

from chief.push import (
    GitError,
    check_gh_cli,
    commit_all,
    commit_and_push,
    create_pr,
    delete_branch,
    pr_body_from_prd,
    pr_title_from_prd,
    push_branch,
)
from chief.repo import branch_exists


@dataclass
class Story:
    id: str
    title: str
    passes: bool = False


@dataclass
class PRD:
    project: str = ""
    description: str = ""
    user_stories: list = field(default_factory=list)


def _git(directory, *args):
    return subprocess.run(
        ["git", *args], cwd=directory, capture_output=True, text=True, check=True
    ).stdout


@pytest.fixture
def repo(tmp_path):
    _git(tmp_path, "init")
    _git(tmp_path, "config", "user.email", "test@example.com")
    _git(tmp_path, "config", "user.name", "Test")
    _git(tmp_path, "config", "commit.gpgsign", "false")
    _git(tmp_path, "checkout", "-b", "main")
    (tmp_path / "README.md").write_text("# Test\n")
    _git(tmp_path, "add", ".")
    _git(tmp_path, "commit", "-m", "initial commit")
    return tmp_path


def _commit_count(directory):
    return int(_git(directory, "rev-list", "--count", "HEAD").strip())


def test_check_gh_cli():
    installed, authenticated = check_gh_cli()
    assert installed == (shutil.which("gh") is not None)
    assert installed or not authenticated


def test_push_branch_fails_without_remote(repo):
    with pytest.raises(GitError, match="failed to push branch"):
        push_branch(repo, "main")


def test_delete_existing_branch(repo):
    _git(repo, "branch", "feature-branch")
    assert branch_exists(repo, "feature-branch") is True
    delete_branch(repo, "feature-branch")
    assert branch_exists(repo, "feature-branch") is False
    assert branch_exists(repo, "main") is True


def test_delete_missing_branch_fails(repo):
    with pytest.raises(GitError, match="failed to delete branch"):
        delete_branch(repo, "nonexistent-branch")


def test_commit_all_commits_changes(repo):
    (repo / "new.txt").write_text("content\n")
    commit_all(repo, "add new file")
    assert _commit_count(repo) == 2
    assert _git(repo, "log", "-1", "--format=%s").strip() == "add new file"
    assert _git(repo, "status", "--porcelain").strip() == ""


def test_commit_all_with_nothing_to_commit(repo):
    commit_all(repo, "nothing")
    assert _commit_count(repo) == 1


def test_commit_and_push_commits_then_fails_on_push(repo):
    (repo / "more.txt").write_text("more\n")
    with pytest.raises(GitError, match="failed to push branch"):
        commit_and_push(repo, "main", "more work")
    assert _commit_count(repo) == 2


def test_create_pr_fails_outside_repo(tmp_path):
    with pytest.raises(GitError, match="failed to create PR"):
        create_pr(tmp_path, "feature", "title", "body")


def test_pr_title_from_prd():
    prd = PRD(project="Git Worktree Support")
    assert pr_title_from_prd("worktrees", prd) == "feat(worktrees): Git Worktree Support"


def test_pr_body_includes_summary_and_completed_stories():
    prd = PRD(
        project="Test Project",
        description="This is a test project description.",
        user_stories=[
            Story("US-001", "Config System", True),
            Story("US-002", "Git Worktree Primitives", True),
            Story("US-003", "Incomplete Story", False),
        ],
    )
    body = pr_body_from_prd(prd)
    assert "## Summary" in body
    assert "This is a test project description." in body
    assert "## Changes" in body
    assert "US-001: Config System" in body
    assert "US-002: Git Worktree Primitives" in body
    assert "Incomplete Story" not in body
    assert body == (
        "## Summary\n\nThis is a test project description.\n\n## Changes\n\n"
        "- US-001: Config System\n- US-002: Git Worktree Primitives\n"
    )


def test_pr_body_with_no_stories():
    prd = PRD(project="Empty Project", description="No stories yet.")
    body = pr_body_from_prd(prd)
    assert "## Summary" in body
    assert body.endswith("## Changes\n\n")
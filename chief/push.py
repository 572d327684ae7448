"""Committing, pushing and opening pull requests."""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol


class GitError(RuntimeError):
    """A git or gh command failed."""


class _Story(Protocol):
    id: str
    title: str
    passes: bool


class _PRD(Protocol):
    project: str
    description: str
    user_stories: Iterable[_Story]


def _run(args: list[str], cwd: str | Path | None = None) -> tuple[int, str]:
    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except OSError as exc:
        return -1, str(exc)
    return result.returncode, result.stdout.strip()


def check_gh_cli() -> tuple[bool, bool]:
    """Return whether the GitHub CLI is installed and whether it is authenticated."""
    if shutil.which("gh") is None:
        return False, False
    code, _ = _run(["gh", "auth", "status"])
    return True, code == 0


def push_branch(directory: str | Path, branch: str) -> None:
    """Push ``branch`` to origin and set its upstream."""
    code, out = _run(["git", "push", "-u", "origin", branch], directory)
    if code != 0:
        raise GitError(f"failed to push branch: {out}")


def commit_all(directory: str | Path, message: str) -> None:
    """Stage every change and commit it; does nothing when nothing is staged."""
    code, out = _run(["git", "add", "-A"], directory)
    if code != 0:
        raise GitError(f"failed to stage changes: {out}")

    code, _ = _run(["git", "diff", "--cached", "--quiet"], directory)
    if code == 0:
        return

    code, out = _run(["git", "commit", "-m", message], directory)
    if code != 0:
        raise GitError(f"failed to commit: {out}")


def commit_and_push(directory: str | Path, branch: str, message: str) -> None:
    """Commit all changes, then push ``branch``."""
    commit_all(directory, message)
    push_branch(directory, branch)


def create_pr(directory: str | Path, branch: str, title: str, body: str) -> str:
    """Open a pull request with ``gh`` and return its URL."""
    code, out = _run(
        ["gh", "pr", "create", "--head", branch, "--title", title, "--body", body],
        directory,
    )
    if code != 0:
        raise GitError(f"failed to create PR: {out}")
    return out


def pr_title_from_prd(prd_name: str, prd: _PRD) -> str:
    """Build a conventional-commit title: ``feat(<name>): <project>``."""
    return f"feat({prd_name}): {prd.project}"


def pr_body_from_prd(prd: _PRD) -> str:
    """Build a PR body with the summary and the list of completed stories."""
    changes = "".join(
        f"- {story.id}: {story.title}\n" for story in prd.user_stories if story.passes
    )
    return f"## Summary\n\n{prd.description}\n\n## Changes\n\n{changes}"


def delete_branch(repo_dir: str | Path, branch: str) -> None:
    """Force-delete a local branch."""
    code, out = _run(["git", "branch", "-D", branch], repo_dir)
    if code != 0:
        raise GitError(f"failed to delete branch: {out}")
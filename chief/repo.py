"""Branches, diffs, clones and worktrees of a git repository."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from chief.push import GitError

_PROTECTED_BRANCHES = ("main", "master")
_RECENT_RANGE = ("HEAD~10", "HEAD")


class MergeConflictError(GitError):
    """A merge stopped on conflicts; the merge has been aborted."""

    def __init__(self, message: str, conflicts: list[str]) -> None:
        super().__init__(message)
        self.conflicts = conflicts


@dataclass
class Worktree:
    """One entry of ``git worktree list``."""

    path: str
    branch: str = ""
    head: str = ""
    prunable: bool = False


def _exec(
    args: list[str], cwd: str | Path | None, *, combined: bool = False
) -> tuple[int, str]:
    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if combined else subprocess.PIPE,
            text=True,
        )
    except OSError as exc:
        return -1, str(exc)
    return result.returncode, result.stdout


def _output(cwd: str | Path | None, *args: str) -> str:
    code, out = _exec(["git", *args], cwd)
    if code != 0:
        raise GitError(f"git {' '.join(args)} failed")
    return out


def _succeeds(cwd: str | Path | None, *args: str) -> bool:
    code, _ = _exec(["git", *args], cwd)
    return code == 0


def _combined(cwd: str | Path | None, failure: str, *args: str) -> None:
    code, out = _exec(["git", *args], cwd, combined=True)
    if code != 0:
        raise GitError(f"{failure}: {out.strip()}")


def get_current_branch(directory: str | Path) -> str:
    """Return the name of the branch checked out in ``directory``."""
    return _output(directory, "rev-parse", "--abbrev-ref", "HEAD").strip()


def is_protected_branch(branch: str) -> bool:
    """Tell whether ``branch`` is main or master."""
    return branch in _PROTECTED_BRANCHES


def create_branch(directory: str | Path, branch_name: str) -> None:
    """Create ``branch_name`` and switch to it."""
    _combined(directory, f"failed to create branch {branch_name}", "checkout", "-b", branch_name)


def branch_exists(directory: str | Path, branch_name: str) -> bool:
    """Tell whether a ref called ``branch_name`` resolves."""
    return _succeeds(directory, "rev-parse", "--verify", branch_name)


def is_git_repo(directory: str | Path) -> bool:
    """Tell whether ``directory`` lies inside a git repository."""
    return _succeeds(directory, "rev-parse", "--git-dir")


def commit_count(repo_dir: str | Path, branch: str) -> int:
    """Count commits on ``branch`` not on the default branch; 0 when unknown."""
    try:
        default_branch = get_default_branch(repo_dir)
        out = _output(repo_dir, "rev-list", "--count", f"{default_branch}..{branch}")
        return int(out.strip())
    except (GitError, ValueError):
        return 0


def _merge_base(directory: str | Path, ref1: str, ref2: str) -> str:
    return _output(directory, "merge-base", ref1, ref2).strip()


def _feature_base(directory: str | Path) -> str | None:
    """Merge base with the default branch, or None when on main/master or unknown."""
    branch = get_current_branch(directory)
    if is_protected_branch(branch):
        return None
    try:
        base_branch = get_default_branch(directory)
        return _merge_base(directory, base_branch, "HEAD") or None
    except GitError:
        return None


def get_diff(directory: str | Path) -> str:
    """Diff of the feature branch against its merge base, else of the last 10 commits."""
    base = _feature_base(directory)
    refs = (base, "HEAD") if base else _RECENT_RANGE
    return _output(directory, "diff", *refs)


def get_diff_stats(directory: str | Path) -> str:
    """Short ``--stat`` summary of the same range as :func:`get_diff`."""
    base = _feature_base(directory)
    refs = (base, "HEAD") if base else _RECENT_RANGE
    return _output(directory, "diff", "--stat", *refs).strip()


def clone_repo(url: str, target_dir: str | Path, token: str) -> None:
    """Clone ``url`` into ``target_dir``, embedding ``token`` in HTTP(S) URLs."""
    clone_url = url
    if token and url.startswith("http"):
        clone_url = url.replace("://", f"://{token}@", 1)
    code, _ = _exec(["git", "clone", clone_url, str(target_dir)], None)
    if code != 0:
        raise GitError(f"failed to clone repository into {target_dir}")


def init_repo(directory: str | Path) -> None:
    """Initialise a new repository in ``directory``."""
    _combined(directory, "failed to initialise repository", "init")


def get_remote_url(directory: str | Path, remote: str) -> str:
    """Return the URL configured for ``remote``."""
    return _output(directory, "remote", "get-url", remote).strip()


def parse_github_url(raw_url: str) -> tuple[str, str]:
    """Split an HTTPS or SSH GitHub URL into ``(owner, repo)``."""
    if raw_url.endswith(".git"):
        raw_url = raw_url[: -len(".git")]

    if raw_url.startswith("git@"):
        _, sep, path = raw_url.partition(":")
        owner, slash, repo = path.partition("/")
        if sep and slash:
            return owner, repo
        raise ValueError(f"invalid SSH GitHub URL: {raw_url}")

    trimmed = raw_url.removeprefix("https://").removeprefix("http://")
    parts = trimmed.split("/", 2)
    if len(parts) == 3:
        return parts[1], parts[2]
    raise ValueError(f"invalid GitHub URL: {raw_url}")


def get_default_branch(repo_dir: str | Path) -> str:
    """Detect the default branch from origin's HEAD, else main or master."""
    code, out = _exec(["git", "symbolic-ref", "refs/remotes/origin/HEAD"], repo_dir)
    if code == 0:
        return out.strip().rsplit("/", 1)[-1]
    for branch in _PROTECTED_BRANCHES:
        if branch_exists(repo_dir, branch):
            return branch
    raise GitError("could not detect default branch (tried main, master)")


def create_worktree(repo_dir: str | Path, worktree_path: str | Path, branch: str) -> None:
    """Add a worktree on ``branch``, reusing a valid one or replacing a stale one."""
    abs_path = os.path.abspath(worktree_path)

    if is_worktree(abs_path):
        try:
            if get_current_branch(abs_path) == branch:
                return
        except GitError:
            pass
        try:
            remove_worktree(repo_dir, abs_path)
        except GitError as exc:
            raise GitError(f"failed to remove stale worktree: {exc}") from exc

    try:
        default_branch = get_default_branch(repo_dir)
    except GitError as exc:
        raise GitError(f"failed to detect default branch: {exc}") from exc

    if not branch_exists(repo_dir, branch):
        _combined(repo_dir, f"failed to create branch {branch}", "branch", branch, default_branch)

    _combined(repo_dir, "failed to add worktree", "worktree", "add", abs_path, branch)


def remove_worktree(repo_dir: str | Path, worktree_path: str | Path) -> None:
    """Remove the worktree at ``worktree_path``."""
    _combined(repo_dir, "failed to remove worktree", "worktree", "remove", str(worktree_path))


def list_worktrees(repo_dir: str | Path) -> list[Worktree]:
    """Parse ``git worktree list --porcelain`` into :class:`Worktree` entries."""
    try:
        output = _output(repo_dir, "worktree", "list", "--porcelain")
    except GitError as exc:
        raise GitError(f"failed to list worktrees: {exc}") from exc

    worktrees: list[Worktree] = []
    current: Worktree | None = None
    for raw in output.split("\n"):
        line = raw.strip()
        if line.startswith("worktree "):
            current = Worktree(path=line.removeprefix("worktree "))
        elif current is None:
            continue
        elif line.startswith("HEAD "):
            current.head = line.removeprefix("HEAD ")
        elif line.startswith("branch "):
            current.branch = line.removeprefix("branch ").removeprefix("refs/heads/")
        elif line == "prunable":
            current.prunable = True
        elif line == "" and current.path:
            worktrees.append(current)
            current = None
    if current is not None and current.path:
        worktrees.append(current)
    return worktrees


def is_worktree(path: str | Path) -> bool:
    """Tell whether ``path`` is a working tree of a git repository."""
    code, out = _exec(["git", "rev-parse", "--is-inside-work-tree"], path)
    if code != 0 or out.strip() != "true":
        return False
    return _succeeds(path, "rev-parse", "--git-common-dir") and _succeeds(
        path, "rev-parse", "--git-dir"
    )


def worktree_path_for_prd(base_dir: str | Path, prd_name: str) -> str:
    """Return the worktree path used for the PRD ``prd_name``."""
    return os.path.join(base_dir, ".chief", "worktrees", prd_name)


def prune_worktrees(repo_dir: str | Path) -> None:
    """Drop tracking of worktrees that no longer exist."""
    _combined(repo_dir, "failed to prune worktrees", "worktree", "prune")


def detect_orphaned_worktrees(base_dir: str | Path) -> dict[str, str] | None:
    """Map PRD names to worktree directories under ``.chief/worktrees``.

    Returns None when that directory cannot be read.
    """
    worktrees_dir = os.path.join(base_dir, ".chief", "worktrees")
    try:
        entries = sorted(os.scandir(worktrees_dir), key=lambda entry: entry.name)
    except OSError:
        return None
    return {
        entry.name: os.path.join(worktrees_dir, entry.name)
        for entry in entries
        if entry.is_dir()
    }


def _conflicts(repo_dir: str | Path) -> list[str]:
    try:
        output = _output(repo_dir, "diff", "--name-only", "--diff-filter=U")
    except GitError:
        return []
    return [line for line in output.strip().split("\n") if line]


def merge_branch(repo_dir: str | Path, branch: str) -> None:
    """Merge ``branch`` into the current branch.

    On conflicts the merge is aborted and MergeConflictError carries the files.
    """
    code, out = _exec(["git", "merge", branch], repo_dir, combined=True)
    if code == 0:
        return
    conflicts = _conflicts(repo_dir)
    if conflicts:
        _exec(["git", "merge", "--abort"], repo_dir)
        raise MergeConflictError(f"merge conflict: {out.strip()}", conflicts)
    raise GitError(f"merge failed: {out.strip()}")
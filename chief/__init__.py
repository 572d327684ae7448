"""Configuration, SQLite storage, git, worktree and GitHub helpers for PRD-driven development."""

__version__ = "0.1.0"

__all__ = ["config", "store", "gitignore", "push", "repo", "github"]
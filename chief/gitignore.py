"""Keeping the ``.chief`` directory out of version control."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

_ENTRY = ".chief/\n"


def is_chief_ignored(directory: str | Path) -> bool:
    """Tell whether git already ignores ``.chief`` (locally or globally)."""
    try:
        result = subprocess.run(
            ["git", "check-ignore", "-q", ".chief"],
            cwd=directory,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError:
        return False
    return result.returncode == 0


def add_chief_to_gitignore(directory: str | Path) -> None:
    """Add ``.chief/`` to the directory's .gitignore, creating it if needed."""
    path = Path(directory) / ".gitignore"
    try:
        content = path.read_bytes()
    except FileNotFoundError:
        path.write_text(_ENTRY, encoding="utf-8")
        return

    lines = content.decode("utf-8", errors="replace").split("\n")
    if any(line.strip() in (".chief", ".chief/") for line in lines):
        return

    with path.open("a", encoding="utf-8") as handle:
        if content and not content.endswith(b"\n"):
            handle.write("\n")
        handle.write(_ENTRY)


def prompt_add_chief_to_gitignore() -> bool:
    """Ask on the terminal whether to add ``.chief`` to .gitignore."""
    print("Would you like to add .chief to .gitignore?")
    print("This keeps your PRD plans local and out of version control.")
    print("(Not required, but recommended if you prefer local-only plans)")
    print("\nAdd .chief to .gitignore? [y/N]: ", end="", flush=True)

    response = sys.stdin.readline()
    if not response.endswith("\n"):
        return False
    return response.strip().lower() in ("y", "yes")
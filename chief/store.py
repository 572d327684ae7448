"""SQLite persistence for projects, user stories and agent logs."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

_SCHEMA = (
    """CREATE TABLE IF NOT EXISTS projects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT UNIQUE NOT NULL,
        description TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )""",
    """CREATE TABLE IF NOT EXISTS user_stories (
        id TEXT PRIMARY KEY,
        project_id INTEGER NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        acceptance_criteria TEXT,
        priority INTEGER DEFAULT 0,
        passes BOOLEAN DEFAULT 0,
        in_progress BOOLEAN DEFAULT 0,
        FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE CASCADE
    )""",
    """CREATE TABLE IF NOT EXISTS agent_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_name TEXT NOT NULL,
        message TEXT NOT NULL,
        timestamp DATETIME DEFAULT CURRENT_TIMESTAMP
    )""",
)

_LATE_COLUMNS = (
    "ALTER TABLE projects ADD COLUMN title TEXT",
    "ALTER TABLE projects ADD COLUMN repo_url TEXT",
)


@dataclass
class StoryRecord:
    """A user story as stored in the database."""

    id: str
    title: str
    description: str = ""
    acceptance_criteria: list[str] = field(default_factory=list)
    priority: int = 0
    passes: bool = False
    in_progress: bool = False
    project_id: int = 0


@dataclass
class ProjectInfo:
    """Summary of a project for listings."""

    name: str
    title: str
    description: str


@dataclass
class ProjectRecord:
    """A project row looked up by name."""

    id: int
    title: str
    description: str
    repo_url: str


def _rfc3339(raw: Any) -> str:
    try:
        moment = datetime.fromisoformat(str(raw))
    except ValueError:
        return str(raw)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.isoformat(timespec="seconds").replace("+00:00", "Z")


def _criteria(raw: Any) -> list[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return list(value) if isinstance(value, list) else []


class Store:
    """A SQLite-backed store; usable as a context manager."""

    def __init__(self, dsn: str) -> None:
        self._conn = sqlite3.connect(dsn)
        try:
            self._migrate()
        except sqlite3.Error:
            self._conn.close()
            raise

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> Store:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _migrate(self) -> None:
        with self._conn:
            for statement in _SCHEMA:
                self._conn.execute(statement)
        for statement in _LATE_COLUMNS:
            try:
                with self._conn:
                    self._conn.execute(statement)
            except sqlite3.OperationalError:
                pass  # column already present

    def save_project(self, name: str, title: str, description: str, repo_url: str) -> int:
        """Insert or update a project by name; return the last inserted row id."""
        with self._conn:
            cursor = self._conn.execute(
                """INSERT INTO projects (name, title, description, repo_url, updated_at)
                VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(name) DO UPDATE SET
                    title = excluded.title,
                    description = excluded.description,
                    repo_url = excluded.repo_url,
                    updated_at = CURRENT_TIMESTAMP""",
                (name, title, description, repo_url),
            )
        return cursor.lastrowid or 0

    def get_project(self, name: str) -> ProjectRecord:
        """Return the project called ``name``; raise KeyError if there is none."""
        row = self._conn.execute(
            "SELECT id, title, description, repo_url FROM projects WHERE name = ?",
            (name,),
        ).fetchone()
        if row is None:
            raise KeyError(name)
        project_id, title, description, repo_url = row
        return ProjectRecord(project_id, title or "", description or "", repo_url or "")

    def get_project_id(self, name: str) -> int:
        """Return the id of the project called ``name``; raise KeyError if missing."""
        row = self._conn.execute("SELECT id FROM projects WHERE name = ?", (name,)).fetchone()
        if row is None:
            raise KeyError(name)
        return row[0]

    def save_story(self, project_id: int, story: StoryRecord) -> None:
        """Insert or update a story by id under ``project_id``."""
        with self._conn:
            self._conn.execute(
                """INSERT INTO user_stories
                    (id, project_id, title, description, acceptance_criteria,
                     priority, passes, in_progress)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    description = excluded.description,
                    acceptance_criteria = excluded.acceptance_criteria,
                    priority = excluded.priority,
                    passes = excluded.passes,
                    in_progress = excluded.in_progress""",
                (
                    story.id,
                    project_id,
                    story.title,
                    story.description,
                    json.dumps(list(story.acceptance_criteria)),
                    story.priority,
                    bool(story.passes),
                    bool(story.in_progress),
                ),
            )

    def delete_story(self, project_id: int, story_id: str) -> None:
        with self._conn:
            self._conn.execute(
                "DELETE FROM user_stories WHERE project_id = ? AND id = ?",
                (project_id, story_id),
            )

    def get_stories(self, project_id: int) -> list[StoryRecord]:
        """Return the project's stories in ascending priority order."""
        rows = self._conn.execute(
            """SELECT id, title, description, acceptance_criteria, priority, passes, in_progress
            FROM user_stories WHERE project_id = ? ORDER BY priority ASC""",
            (project_id,),
        )
        return [
            StoryRecord(
                id=story_id,
                title=title,
                description=description or "",
                acceptance_criteria=_criteria(criteria),
                priority=priority or 0,
                passes=bool(passes),
                in_progress=bool(in_progress),
                project_id=project_id,
            )
            for story_id, title, description, criteria, priority, passes, in_progress in rows
        ]

    def add_log(self, project_name: str, message: str) -> None:
        with self._conn:
            self._conn.execute(
                "INSERT INTO agent_logs (project_name, message) VALUES (?, ?)",
                (project_name, message),
            )

    def get_logs(self, project_name: str, limit: int) -> list[str]:
        """Return the newest ``limit`` log lines, oldest first, as ``"<time>: <message>"``."""
        rows = self._conn.execute(
            """SELECT message, timestamp FROM agent_logs WHERE project_name = ?
            ORDER BY timestamp DESC, id DESC LIMIT ?""",
            (project_name, limit),
        ).fetchall()
        return [f"{_rfc3339(stamp)}: {message}" for message, stamp in reversed(rows)]

    def list_projects(self) -> list[ProjectInfo]:
        """Return all projects, most recently updated first."""
        rows = self._conn.execute(
            "SELECT name, title, description FROM projects ORDER BY updated_at DESC, id DESC"
        )
        return [
            ProjectInfo(name=name, title=title or name, description=description or "")
            for name, title, description in rows
        ]

    def delete_project(self, name: str) -> None:
        """Remove a project with its stories and logs; a missing project is ignored."""
        try:
            project_id = self.get_project(name).id
        except KeyError:
            return
        with self._conn:
            self._conn.execute("DELETE FROM user_stories WHERE project_id = ?", (project_id,))
            self._conn.execute("DELETE FROM agent_logs WHERE project_name = ?", (name,))
            self._conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
"""Project-level settings stored in ``.chief/config.yaml``."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILE = Path(".chief") / "config.yaml"


@dataclass
class WorktreeConfig:
    """Worktree-related settings."""

    setup: str = ""


@dataclass
class OnCompleteConfig:
    """Automation that runs once a PRD is complete."""

    push: bool = False
    create_pr: bool = False


@dataclass
class Config:
    """Project-level settings for Chief."""

    worktree: WorktreeConfig = field(default_factory=WorktreeConfig)
    on_complete: OnCompleteConfig = field(default_factory=OnCompleteConfig)


def _config_path(base_dir: str | Path) -> Path:
    return Path(base_dir) / CONFIG_FILE


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"config section {key!r} must be a mapping")
    return value


def _flag(section: dict[str, Any], key: str) -> bool:
    value = section.get(key, False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"config value {key!r} must be a boolean")
    return value


def _from_mapping(data: Any) -> Config:
    if data is None:
        return default()
    if not isinstance(data, dict):
        raise ValueError("config file must contain a mapping")
    worktree = _section(data, "worktree")
    on_complete = _section(data, "onComplete")
    setup = worktree.get("setup")
    return Config(
        worktree=WorktreeConfig(setup="" if setup is None else str(setup)),
        on_complete=OnCompleteConfig(
            push=_flag(on_complete, "push"),
            create_pr=_flag(on_complete, "createPR"),
        ),
    )


def _to_mapping(cfg: Config) -> dict[str, Any]:
    return {
        "worktree": {"setup": cfg.worktree.setup},
        "onComplete": {
            "push": cfg.on_complete.push,
            "createPR": cfg.on_complete.create_pr,
        },
    }


def default() -> Config:
    """Return a configuration with every setting at its zero value."""
    return Config()


def exists(base_dir: str | Path) -> bool:
    """Tell whether the config file exists under ``base_dir``."""
    return _config_path(base_dir).exists()


def load(base_dir: str | Path) -> Config:
    """Read the config file; a missing file yields the defaults."""
    try:
        text = _config_path(base_dir).read_text(encoding="utf-8")
    except FileNotFoundError:
        return default()
    return _from_mapping(yaml.safe_load(text))


def save(base_dir: str | Path, cfg: Config) -> None:
    """Write ``cfg`` to the config file, creating ``.chief`` if needed."""
    path = _config_path(base_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(_to_mapping(cfg), sort_keys=False, default_flow_style=False),
        encoding="utf-8",
    )
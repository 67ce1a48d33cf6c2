"""Load and merge configuration from .gitreview.toml and env vars."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from gitreview.config.schema import (
    GitConfig,
    GitReviewConfig,
    LimitsConfig,
    OutputConfig,
)

CONFIG_FILENAME = ".gitreview.toml"


class ConfigError(Exception):
    """Raised when config is malformed or unreadable."""


def find_config_file(base_dir: Path, override: Optional[str] = None) -> Optional[Path]:
    """Locate the config file. *override*, then $GITREVIEW_CONFIG, take precedence."""
    override = override or os.environ.get("GITREVIEW_CONFIG")
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = base_dir / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _env_int(name: str) -> Optional[int]:
    val = os.environ.get(name)
    if not val:
        return None
    try:
        return int(val)
    except ValueError:
        return None


def _merge_env_overrides(cfg: GitReviewConfig) -> None:
    """Apply GITREVIEW_* environment variable overrides."""
    if (val := _env_int("GITREVIEW_MAX_UNTRACKED_DIFFS")) is not None:
        cfg.limits.max_untracked_diffs = val
    if (val := _env_int("GITREVIEW_MAX_UNTRACKED_FILE_SIZE")) is not None:
        cfg.limits.max_untracked_file_size = val
    if (val := _env_int("GITREVIEW_MAX_BUFFER_BYTES")) is not None:
        cfg.limits.max_buffer_bytes = val
    if timeout := os.environ.get("GITREVIEW_COMMAND_TIMEOUT"):
        if timeout.lower() in ("none", "0", "off"):
            cfg.limits.command_timeout = None
        else:
            try:
                cfg.limits.command_timeout = float(timeout)
            except ValueError:
                pass
    if binary := os.environ.get("GITREVIEW_GIT_BINARY"):
        cfg.git.binary = binary
    if fmt := os.environ.get("GITREVIEW_FORMAT"):
        if fmt in ("terminal", "json"):
            cfg.output.format = fmt  # type: ignore[assignment]


def _build_section(data: Dict[str, Any], cls: type, section: str):
    """Build a dataclass from a TOML section dict, ignoring unknown keys."""
    import dataclasses

    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.get(section, {}).items() if k in valid_fields}
    return cls(**filtered)


def validate_config(cfg: GitReviewConfig) -> None:
    """Reject limits the engine cannot work with."""
    limits = cfg.limits
    for name in ("max_buffer_bytes", "max_untracked_file_size", "max_untracked_diffs"):
        value = getattr(limits, name)
        if not isinstance(value, int) or value < 0:
            raise ConfigError(f"limits.{name} must be a non-negative integer, got {value!r}")
    if not isinstance(limits.untracked_workers, int) or limits.untracked_workers < 1:
        raise ConfigError(
            f"limits.untracked_workers must be at least 1, got {limits.untracked_workers!r}"
        )
    if not isinstance(limits.default_commit_limit, int) or limits.default_commit_limit < 1:
        raise ConfigError(
            f"limits.default_commit_limit must be at least 1, got {limits.default_commit_limit!r}"
        )
    timeout = limits.command_timeout
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float))):
        raise ConfigError(f"limits.command_timeout must be a number, got {timeout!r}")
    if timeout is not None and timeout <= 0:
        raise ConfigError(f"limits.command_timeout must be positive, got {limits.command_timeout!r}")
    if cfg.output.format not in ("terminal", "json"):
        raise ConfigError(f"output.format must be 'terminal' or 'json', got {cfg.output.format!r}")


def load_config(
    base_dir: Path,
    config_override: Optional[str] = None,
) -> GitReviewConfig:
    """Load, validate, and return a GitReviewConfig."""
    config_path = find_config_file(base_dir, config_override)

    if config_path is None:
        cfg = GitReviewConfig()
    else:
        raw = _parse_toml(config_path)
        projects = raw.get("projects", {})
        if not isinstance(projects, dict):
            raise ConfigError(f"[projects] must be a table in {config_path}")
        try:
            cfg = GitReviewConfig(
                version=raw.get("version", "1.0"),
                limits=_build_section(raw, LimitsConfig, "limits"),
                git=_build_section(raw, GitConfig, "git"),
                output=_build_section(raw, OutputConfig, "output"),
                projects={str(k): str(v) for k, v in projects.items()},
            )
        except (TypeError, AttributeError) as exc:
            raise ConfigError(f"Invalid section in {config_path}: {exc}") from exc

    _merge_env_overrides(cfg)
    validate_config(cfg)
    return cfg

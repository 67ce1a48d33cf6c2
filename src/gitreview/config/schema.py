"""Configuration schema: dataclasses for every config section."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Literal, Optional

OutputFormat = Literal["terminal", "json"]


@dataclass
class LimitsConfig:
    max_buffer_bytes: int = 10 * 1024 * 1024  # per git invocation
    max_untracked_file_size: int = 1 * 1024 * 1024  # larger files get a placeholder diff
    max_untracked_diffs: int = 50  # untracked files diffed per call
    untracked_workers: int = 4
    command_timeout: Optional[float] = 30.0  # seconds; None disables
    default_commit_limit: int = 50


@dataclass
class GitConfig:
    binary: str = "git"


@dataclass
class OutputConfig:
    format: OutputFormat = "terminal"


@dataclass
class GitReviewConfig:
    version: str = "1.0"
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    git: GitConfig = field(default_factory=GitConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    projects: Dict[str, str] = field(default_factory=dict)  # project id -> root path

"""Data models returned by the repository engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"


class WorkingTreeFilter(str, Enum):
    """Which working-tree phases a query covers."""

    ALL = "all"
    STAGED = "staged"
    UNSTAGED = "unstaged"

    @property
    def includes_staged(self) -> bool:
        return self in (WorkingTreeFilter.ALL, WorkingTreeFilter.STAGED)

    @property
    def includes_unstaged(self) -> bool:
        return self in (WorkingTreeFilter.ALL, WorkingTreeFilter.UNSTAGED)

    @property
    def includes_untracked(self) -> bool:
        return self is WorkingTreeFilter.ALL


@dataclass(frozen=True)
class Commit:
    sha: str
    message: str
    author: str
    author_email: str
    date: str  # ISO-8601, as printed by git


@dataclass(frozen=True)
class Branch:
    name: str
    sha: str
    is_current: bool = False


@dataclass(frozen=True)
class Tag:
    name: str
    sha: str


@dataclass(frozen=True)
class ChangedFile:
    """One path in a diff, with its change kind and line counts."""

    path: str
    status: FileStatus
    additions: int = 0
    deletions: int = 0
    old_path: Optional[str] = None  # set on renames and copies


@dataclass
class WorkingTreeChanges:
    staged: List[ChangedFile] = field(default_factory=list)
    unstaged: List[ChangedFile] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)


@dataclass
class UntrackedDiffs:
    """Per-call outcome of diffing untracked files under the count cap.

    ``total`` and ``processed`` describe the cap only; a file that failed
    and contributed no diff text is still counted.
    """

    diffs: List[str] = field(default_factory=list)
    total: int = 0
    processed: int = 0

    @property
    def capped(self) -> bool:
        return self.total > self.processed


@dataclass
class WorkingTreeDiffResult:
    diff: str = ""
    untracked_diffs_capped: bool = False
    untracked_total: int = 0
    untracked_processed: int = 0


@dataclass
class WorkingTreeData(WorkingTreeDiffResult):
    """Changes and diff computed in one pass."""

    changes: WorkingTreeChanges = field(default_factory=WorkingTreeChanges)

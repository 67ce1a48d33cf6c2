"""Git interface layer: gateway, path confinement, parsers, service."""

from gitreview.git.errors import GitIOError, GitReviewError, NotFoundError, ValidationError
from gitreview.git.models import (
    Branch,
    ChangedFile,
    Commit,
    FileStatus,
    Tag,
    WorkingTreeChanges,
    WorkingTreeData,
    WorkingTreeDiffResult,
    WorkingTreeFilter,
)
from gitreview.git.paths import confine
from gitreview.git.runner import DiffSignal, Failed, GitRunner, Success
from gitreview.git.service import RepositoryService

__all__ = [
    "Branch",
    "ChangedFile",
    "Commit",
    "DiffSignal",
    "Failed",
    "FileStatus",
    "GitIOError",
    "GitReviewError",
    "GitRunner",
    "NotFoundError",
    "RepositoryService",
    "Success",
    "Tag",
    "ValidationError",
    "WorkingTreeChanges",
    "WorkingTreeData",
    "WorkingTreeDiffResult",
    "WorkingTreeFilter",
    "confine",
]

"""Repository queries and diffs for the review UI.

Every public method takes a project id. When the caller already holds
the project root it can pass ``root_path=`` to skip the resolver; the
root is otherwise looked up once per call and threaded through every
git invocation of that call.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Union

from gitreview.config.schema import GitReviewConfig
from gitreview.git.errors import GitIOError, GitReviewError, NotFoundError, ValidationError
from gitreview.git.models import (
    Branch,
    ChangedFile,
    Commit,
    Tag,
    UntrackedDiffs,
    WorkingTreeChanges,
    WorkingTreeData,
    WorkingTreeDiffResult,
    WorkingTreeFilter,
)
from gitreview.git.parsers import (
    BRANCH_FORMAT,
    LOG_FORMAT,
    TAG_FORMAT,
    join_changed_files,
    parse_branches,
    parse_listing,
    parse_log,
    parse_tags,
)
from gitreview.git.paths import confine
from gitreview.git.runner import GitRunner
from gitreview.git.untracked import UntrackedDiffer

if TYPE_CHECKING:
    from gitreview.projects import ProjectResolver

logger = logging.getLogger(__name__)

_COMMIT_SHA_RE = re.compile(r"^[a-f0-9]{4,40}$", re.IGNORECASE)
_MISSING_AT_REF_MARKERS = ("does not exist", "exists on disk, but not in")

UNTRACKED_LISTING = ["ls-files", "--others", "--exclude-standard"]

RootPath = Union[str, Path]


def validate_commit_sha(sha: str) -> str:
    """Return *sha* if it is 4-40 hex characters, else raise ValidationError."""
    if not isinstance(sha, str) or not _COMMIT_SHA_RE.match(sha):
        raise ValidationError("Invalid commit SHA", sha=sha)
    return sha


def validate_ref(ref: str) -> str:
    """Reject refs git would misread as options or that are empty."""
    if not isinstance(ref, str) or not ref.strip() or ref.startswith("-"):
        raise ValidationError("Invalid ref", ref=ref)
    return ref


def _coerce_filter(value: Union[WorkingTreeFilter, str]) -> WorkingTreeFilter:
    try:
        return WorkingTreeFilter(value)
    except ValueError:
        raise ValidationError("Invalid working-tree filter", filter=value) from None


def _phase_args(staged: bool, *extra: str) -> List[str]:
    return ["diff", "--cached", *extra] if staged else ["diff", *extra]


class RepositoryService:
    """Stateless git query engine; every call is a fresh set of git runs."""

    def __init__(
        self,
        resolver: ProjectResolver,
        runner: Optional[GitRunner] = None,
        *,
        config: Optional[GitReviewConfig] = None,
    ) -> None:
        self.config = config or GitReviewConfig()
        limits = self.config.limits
        self.resolver = resolver
        self.runner = runner or GitRunner(
            self.config.git.binary,
            max_buffer_bytes=limits.max_buffer_bytes,
            timeout=limits.command_timeout,
        )
        self.untracked = UntrackedDiffer(
            self.runner,
            max_files=limits.max_untracked_diffs,
            max_file_size=limits.max_untracked_file_size,
            workers=limits.untracked_workers,
        )

    async def _root(self, project_id: str, root_path: Optional[RootPath]) -> Path:
        if root_path is not None:
            return Path(root_path)
        return await self.resolver.get_root(project_id)

    # ── metadata ──────────────────────────────────────────────────────────

    async def resolve_ref(self, project_id: str, ref: str, *, root_path: Optional[RootPath] = None) -> str:
        """Resolve a branch, tag, or commit-ish to its full SHA."""
        validate_ref(ref)
        root = await self._root(project_id, root_path)
        output = await self.runner.output(root, ["rev-parse", ref])
        return output.strip()

    async def list_commits(
        self,
        project_id: str,
        *,
        ref: Optional[str] = None,
        limit: Optional[int] = None,
        root_path: Optional[RootPath] = None,
    ) -> List[Commit]:
        """Newest-first commits reachable from *ref* (default HEAD)."""
        ref = validate_ref(ref) if ref is not None else "HEAD"
        limit = limit if limit is not None else self.config.limits.default_commit_limit
        if limit < 1:
            raise ValidationError("Commit limit must be positive", limit=limit)
        root = await self._root(project_id, root_path)
        output = await self.runner.output(root, ["log", f"--format={LOG_FORMAT}", f"-n{limit}", ref])
        return parse_log(output)

    async def list_branches(self, project_id: str, *, root_path: Optional[RootPath] = None) -> List[Branch]:
        root = await self._root(project_id, root_path)
        output = await self.runner.output(root, ["for-each-ref", f"--format={BRANCH_FORMAT}", "refs/heads/"])
        return parse_branches(output)

    async def list_tags(self, project_id: str, *, root_path: Optional[RootPath] = None) -> List[Tag]:
        root = await self._root(project_id, root_path)
        output = await self.runner.output(root, ["for-each-ref", f"--format={TAG_FORMAT}", "refs/tags/"])
        return parse_tags(output)

    async def is_repository(self, project_id: str, *, root_path: Optional[RootPath] = None) -> bool:
        """True if the project root holds a ``.git`` entry. Never raises."""
        try:
            root = await self._root(project_id, root_path)
            return (root / ".git").exists()
        except (GitReviewError, OSError):
            return False

    async def get_current_branch(
        self, project_id: str, *, root_path: Optional[RootPath] = None
    ) -> Optional[str]:
        """Current branch name; None when HEAD is detached or on any failure."""
        try:
            root = await self._root(project_id, root_path)
            output = await self.runner.output(root, ["rev-parse", "--abbrev-ref", "HEAD"])
        except (GitReviewError, OSError) as exc:
            logger.debug("Current branch unavailable for %s: %s", project_id, exc)
            return None
        branch = output.strip()
        return None if not branch or branch == "HEAD" else branch

    async def get_file_content(
        self, project_id: str, ref: str, file_path: str, *, root_path: Optional[RootPath] = None
    ) -> str:
        """Content of *file_path* at *ref*.

        Raises:
            ValidationError: If the path escapes the project root.
            NotFoundError: If the file does not exist at *ref*.
        """
        validate_ref(ref)
        root = await self._root(project_id, root_path)
        relative = confine(root, file_path)
        try:
            return await self.runner.output(root, ["show", f"{ref}:{relative}"])
        except GitIOError as exc:
            if any(marker in exc.stderr for marker in _MISSING_AT_REF_MARKERS):
                raise NotFoundError(
                    f"File not found at ref: {ref}:{relative}", ref=ref, path=relative
                ) from exc
            raise

    # ── ranges and commits ────────────────────────────────────────────────

    async def get_diff(
        self, project_id: str, base: str, head: str, *, root_path: Optional[RootPath] = None
    ) -> str:
        """Raw unified diff between two refs."""
        validate_ref(base)
        validate_ref(head)
        root = await self._root(project_id, root_path)
        return await self.runner.output(root, ["diff", base, head])

    async def get_changed_files(
        self, project_id: str, base: str, head: str, *, root_path: Optional[RootPath] = None
    ) -> List[ChangedFile]:
        validate_ref(base)
        validate_ref(head)
        root = await self._root(project_id, root_path)
        numstat, name_status = await asyncio.gather(
            self.runner.output(root, ["diff", "--numstat", base, head]),
            self.runner.output(root, ["diff", "--name-status", base, head]),
        )
        return join_changed_files(numstat, name_status)

    async def get_commit_diff(
        self, project_id: str, sha: str, *, root_path: Optional[RootPath] = None
    ) -> str:
        """Patch introduced by a single commit, without the commit header."""
        validate_commit_sha(sha)
        root = await self._root(project_id, root_path)
        return await self.runner.output(root, ["show", sha, "--format="])

    async def get_commit_changed_files(
        self, project_id: str, sha: str, *, root_path: Optional[RootPath] = None
    ) -> List[ChangedFile]:
        validate_commit_sha(sha)
        root = await self._root(project_id, root_path)
        numstat, name_status = await asyncio.gather(
            self.runner.output(root, ["show", sha, "--format=", "--numstat"]),
            self.runner.output(root, ["show", sha, "--format=", "--name-status"]),
        )
        return join_changed_files(numstat, name_status)

    # ── working tree ──────────────────────────────────────────────────────

    async def _phase_changes(self, root: Path, staged: bool) -> List[ChangedFile]:
        numstat, name_status = await asyncio.gather(
            self.runner.output(root, _phase_args(staged, "--numstat")),
            self.runner.output(root, _phase_args(staged, "--name-status")),
        )
        return join_changed_files(numstat, name_status)

    async def _phase_diff(self, root: Path, staged: bool) -> str:
        return await self.runner.output(root, _phase_args(staged))

    async def _untracked_listing(self, root: Path) -> List[str]:
        return parse_listing(await self.runner.output(root, UNTRACKED_LISTING))

    async def _empty_list(self) -> list:
        return []

    async def _empty_text(self) -> str:
        return ""

    async def get_working_tree_changes(
        self,
        project_id: str,
        filter: WorkingTreeFilter = WorkingTreeFilter.ALL,
        *,
        root_path: Optional[RootPath] = None,
    ) -> WorkingTreeChanges:
        """Staged, unstaged, and untracked paths, limited by *filter*."""
        data = await self._collect(project_id, _coerce_filter(filter), root_path, want_diff=False)
        return data.changes

    async def get_working_tree_diff(
        self,
        project_id: str,
        filter: WorkingTreeFilter = WorkingTreeFilter.ALL,
        *,
        root_path: Optional[RootPath] = None,
    ) -> WorkingTreeDiffResult:
        """One unified diff: staged, then unstaged, then untracked files."""
        data = await self._collect(project_id, _coerce_filter(filter), root_path, want_changes=False)
        return WorkingTreeDiffResult(
            diff=data.diff,
            untracked_diffs_capped=data.untracked_diffs_capped,
            untracked_total=data.untracked_total,
            untracked_processed=data.untracked_processed,
        )

    async def get_working_tree_data(
        self,
        project_id: str,
        filter: WorkingTreeFilter = WorkingTreeFilter.ALL,
        *,
        root_path: Optional[RootPath] = None,
    ) -> WorkingTreeData:
        """Changes and diff together, listing untracked files only once."""
        return await self._collect(project_id, _coerce_filter(filter), root_path)

    async def _collect(
        self,
        project_id: str,
        filter: WorkingTreeFilter,
        root_path: Optional[RootPath],
        *,
        want_changes: bool = True,
        want_diff: bool = True,
    ) -> WorkingTreeData:
        root = await self._root(project_id, root_path)

        def changes_for(active: bool, staged: bool):
            if active and want_changes:
                return self._phase_changes(root, staged)
            return self._empty_list()

        def diff_for(active: bool, staged: bool):
            if active and want_diff:
                return self._phase_diff(root, staged)
            return self._empty_text()

        listing = self._untracked_listing(root) if filter.includes_untracked else self._empty_list()

        (
            staged_changes,
            staged_diff,
            unstaged_changes,
            unstaged_diff,
            untracked_files,
        ) = await asyncio.gather(
            changes_for(filter.includes_staged, True),
            diff_for(filter.includes_staged, True),
            changes_for(filter.includes_unstaged, False),
            diff_for(filter.includes_unstaged, False),
            listing,
        )

        untracked = UntrackedDiffs()
        if want_diff and untracked_files:
            untracked = await self.untracked.diff_all(root, untracked_files)

        blocks = [text for text in (staged_diff, unstaged_diff) if text.strip()]
        blocks.extend(untracked.diffs)

        return WorkingTreeData(
            changes=WorkingTreeChanges(
                staged=staged_changes,
                unstaged=unstaged_changes,
                untracked=untracked_files if want_changes else [],
            ),
            diff="\n".join(blocks),
            untracked_diffs_capped=untracked.capped,
            untracked_total=untracked.total,
            untracked_processed=untracked.processed,
        )

"""Diffs for untracked files, under file-count and file-size caps.

Untracked files have no baseline in the index, so each one is diffed
against ``/dev/null`` with ``git diff --no-index``. Large and binary
files get a placeholder block instead. A file that fails for any reason
is skipped without aborting the batch.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

from gitreview.git.errors import GitReviewError
from gitreview.git.models import UntrackedDiffs
from gitreview.git.parsers import is_binary_numstat
from gitreview.git.paths import confine
from gitreview.git.runner import GitRunner

logger = logging.getLogger(__name__)

MAX_UNTRACKED_DIFFS = 50
MAX_UNTRACKED_FILE_SIZE = 1 * 1024 * 1024
DEFAULT_WORKERS = 4

NULL_PATH = "/dev/null"


def placeholder_diff(relative_path: str, message: str) -> str:
    """A new-file diff block whose only added line is *message*."""
    return (
        f"diff --git a/{relative_path} b/{relative_path}\n"
        "new file mode 100644\n"
        "--- /dev/null\n"
        f"+++ b/{relative_path}\n"
        "@@ -0,0 +1 @@\n"
        f"+{message}\n"
        "\\ No newline at end of file"
    )


def binary_placeholder(relative_path: str) -> str:
    return placeholder_diff(relative_path, "Binary file (content not shown)")


def large_file_placeholder(relative_path: str, size: int) -> str:
    size_mb = size / (1024 * 1024)
    return placeholder_diff(relative_path, f"File too large ({size_mb:.2f}MB) - content not shown")


class UntrackedDiffer:
    """Generate diffs for a listing of untracked files.

    At most ``max_files`` entries are processed, in listing order, by a
    pool of ``workers`` concurrent tasks. Results are put back in listing
    order regardless of completion order.
    """

    def __init__(
        self,
        runner: GitRunner,
        *,
        max_files: int = MAX_UNTRACKED_DIFFS,
        max_file_size: int = MAX_UNTRACKED_FILE_SIZE,
        workers: int = DEFAULT_WORKERS,
    ) -> None:
        self.runner = runner
        self.max_files = max_files
        self.max_file_size = max_file_size
        self.workers = max(1, workers)

    async def diff_all(self, root_path: Path, untracked: Sequence[str]) -> UntrackedDiffs:
        total = len(untracked)
        to_process = list(untracked[: self.max_files])
        if total > len(to_process):
            logger.info(
                "Capping untracked file diffs: processing %d of %d files in %s",
                len(to_process),
                total,
                root_path,
            )

        semaphore = asyncio.Semaphore(self.workers)

        async def worker(file_path: str) -> Optional[str]:
            async with semaphore:
                return await self._diff_one(root_path, file_path)

        results = await asyncio.gather(*(worker(p) for p in to_process))
        return UntrackedDiffs(
            diffs=[diff for diff in results if diff],
            total=total,
            processed=len(to_process),
        )

    async def _diff_one(self, root_path: Path, file_path: str) -> Optional[str]:
        try:
            relative = confine(root_path, file_path)
            full_path = os.path.join(root_path, relative)

            # Listing and processing race: the file may be gone already.
            if not os.path.exists(full_path):
                return None

            size = os.stat(full_path).st_size
            if size > self.max_file_size:
                return large_file_placeholder(relative, size)

            if await self.is_binary(root_path, relative):
                return binary_placeholder(relative)

            diff = await self.runner.output(
                root_path,
                ["diff", "--no-index", "--", NULL_PATH, relative],
                allow_diff_signal=True,
            )
            return diff if diff.strip() else None
        except (GitReviewError, OSError) as exc:
            logger.warning("Skipping untracked file %s: %s", file_path, exc)
            return None

    async def is_binary(self, root_path: Path, relative: str) -> bool:
        """Ask git whether *relative* is binary; assume text if git can't say."""
        try:
            numstat = await self.runner.output(
                root_path,
                ["diff", "--no-index", "--numstat", "--", NULL_PATH, relative],
                allow_diff_signal=True,
            )
        except GitReviewError:
            return False
        return is_binary_numstat(numstat)

"""Error kinds raised by the repository engine.

Callers map them onto their own surface: validation problems are the
caller's fault, not-found means a ref or path is missing at a revision,
and ``GitIOError`` means git itself (or the subprocess layer) failed.
"""

from __future__ import annotations

from typing import Any, Optional


class GitReviewError(Exception):
    """Base class. ``context`` carries structured diagnostic metadata."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(GitReviewError):
    """Malformed input or a policy violation (path escape, bad SHA, not a repo)."""


class NotFoundError(GitReviewError):
    """A project, ref, or file at a revision does not exist."""


class GitIOError(GitReviewError):
    """git exited unexpectedly, could not be spawned, or overflowed its buffer."""

    def __init__(
        self,
        message: str,
        *,
        command: str,
        code: Optional[int] = None,
        stderr: str = "",
        **context: Any,
    ) -> None:
        super().__init__(message, command=command, code=code, stderr=stderr, **context)
        self.command = command
        self.code = code
        self.stderr = stderr

    def __str__(self) -> str:
        detail = f"{self.message}: {self.command} (exit code {self.code})"
        excerpt = self.stderr.strip()
        if excerpt:
            detail += f": {excerpt[:500]}"
        return detail

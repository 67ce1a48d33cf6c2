"""Async git subprocess gateway.

git's exit status is a signal, not a plain pass/fail: ``git diff
--no-index`` exits 1 when it *found* differences. :meth:`GitRunner.run`
therefore returns one of three outcomes and leaves it to each call site
to decide what it tolerates:

* :class:`Success` - exit 0.
* :class:`DiffSignal` - exit 1 on a call that opted in with
  ``allow_diff_signal=True``; stdout is the result.
* :class:`Failed` - anything else (exit 1 without opt-in, exit >= 2,
  spawn error, stdout overflow, timeout).
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from gitreview.git.errors import GitIOError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_BUFFER = 10 * 1024 * 1024
DEFAULT_TIMEOUT = 30.0
_READ_CHUNK = 64 * 1024


@dataclass(frozen=True)
class Success:
    stdout: str


@dataclass(frozen=True)
class DiffSignal:
    """Exit code 1 from a diff that found differences."""

    stdout: str


@dataclass(frozen=True)
class Failed:
    command: str
    code: Optional[int]
    stderr: str = ""
    reason: str = "exit"  # 'exit' | 'spawn' | 'overflow' | 'timeout'


Outcome = Union[Success, DiffSignal, Failed]


@dataclass(frozen=True)
class Completed:
    """Raw result of one git process, before classification."""

    returncode: Optional[int]
    stdout: bytes = b""
    stderr: bytes = b""
    overflow: bool = False
    timed_out: bool = False


def classify(command: str, completed: Completed, *, allow_diff_signal: bool = False) -> Outcome:
    """Turn a raw process result into an :data:`Outcome`."""
    stderr = completed.stderr.decode("utf-8", errors="replace")
    if completed.timed_out:
        return Failed(command, None, stderr, reason="timeout")
    if completed.overflow:
        return Failed(command, completed.returncode, stderr, reason="overflow")

    stdout = completed.stdout.decode("utf-8", errors="replace")
    if completed.returncode == 0:
        return Success(stdout)
    if completed.returncode == 1 and allow_diff_signal and completed.stdout is not None:
        return DiffSignal(stdout)
    return Failed(command, completed.returncode, stderr)


def outcome_output(outcome: Outcome) -> str:
    """Return stdout of a successful outcome; raise GitIOError for Failed."""
    if isinstance(outcome, Failed):
        message = {
            "spawn": "Git could not be started",
            "overflow": "Git output exceeded the buffer limit",
            "timeout": "Git command timed out",
        }.get(outcome.reason, "Git command failed")
        raise GitIOError(
            message,
            command=outcome.command,
            code=outcome.code,
            stderr=outcome.stderr,
            reason=outcome.reason,
        )
    return outcome.stdout


def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass


async def _read_capped(
    stream: asyncio.StreamReader, limit: int, proc: asyncio.subprocess.Process
) -> Tuple[bytes, bool]:
    """Read *stream* to EOF, killing *proc* once more than *limit* bytes arrive."""
    chunks: List[bytes] = []
    size = 0
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            return b"".join(chunks), False
        size += len(chunk)
        if size > limit:
            _kill(proc)
            return b"", True
        chunks.append(chunk)


class GitRunner:
    """Run git inside a repository root with a buffer cap and a timeout.

    No retries: every call is a read-only query, so retrying is left to
    the caller. Cancelling the awaiting task kills the child process.
    """

    # Placed before every subcommand. Without it git C-quotes non-ASCII
    # paths in listings, numstat and name-status.
    global_options: Tuple[str, ...] = ("-c", "core.quotePath=false")

    def __init__(
        self,
        binary: str = "git",
        *,
        max_buffer_bytes: int = DEFAULT_MAX_BUFFER,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ) -> None:
        self.binary = binary
        self.max_buffer_bytes = max_buffer_bytes
        self.timeout = timeout

    async def run(
        self,
        root_path: Union[str, os.PathLike],
        args: Sequence[str],
        *,
        max_buffer_bytes: Optional[int] = None,
        allow_diff_signal: bool = False,
    ) -> Outcome:
        """Run ``git *args`` in *root_path* and classify the result.

        Raises ValidationError, before spawning anything, when
        *root_path* has no ``.git`` entry.
        """
        root = Path(root_path)
        if not (root / ".git").exists():
            raise ValidationError("Project is not a git repository", root_path=str(root))

        args = list(args)
        command = " ".join([self.binary, *args])
        limit = max_buffer_bytes if max_buffer_bytes is not None else self.max_buffer_bytes
        logger.debug("Running %s in %s", command, root)

        try:
            completed = await self._execute(root, args, limit)
        except OSError as exc:
            logger.error("Failed to start %s: %s", command, exc)
            return Failed(command, None, str(exc), reason="spawn")

        outcome = classify(command, completed, allow_diff_signal=allow_diff_signal)
        if isinstance(outcome, Failed):
            logger.error(
                "Git command failed: %s (exit code %s, %s): %s",
                command,
                outcome.code,
                outcome.reason,
                outcome.stderr.strip()[:500],
            )
        return outcome

    async def output(
        self,
        root_path: Union[str, os.PathLike],
        args: Sequence[str],
        **kwargs,
    ) -> str:
        """Like :meth:`run`, but return stdout or raise GitIOError."""
        return outcome_output(await self.run(root_path, args, **kwargs))

    async def _execute(self, root: Path, args: List[str], limit: int) -> Completed:
        proc = await asyncio.create_subprocess_exec(
            self.binary,
            *self.global_options,
            *args,
            cwd=str(root),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            if self.timeout is None:
                stdout, stderr, overflow = await self._collect(proc, limit)
            else:
                stdout, stderr, overflow = await asyncio.wait_for(
                    self._collect(proc, limit), self.timeout
                )
        except asyncio.TimeoutError:
            _kill(proc)
            await proc.wait()
            return Completed(None, timed_out=True)
        except asyncio.CancelledError:
            _kill(proc)
            await proc.wait()
            raise
        return Completed(proc.returncode, stdout, stderr, overflow=overflow)

    @staticmethod
    async def _collect(
        proc: asyncio.subprocess.Process, limit: int
    ) -> Tuple[bytes, bytes, bool]:
        assert proc.stdout is not None and proc.stderr is not None
        (stdout, overflow), (stderr, _) = await asyncio.gather(
            _read_capped(proc.stdout, limit, proc),
            _read_capped(proc.stderr, limit, proc),
        )
        await proc.wait()
        return stdout, stderr, overflow

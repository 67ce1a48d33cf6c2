"""Parsers for git's textual output formats.

Every parser accepts ``\\n`` and ``\\r\\n`` line endings and drops blank
lines, so trailing newlines never produce empty records.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, NamedTuple, Optional, Tuple

from gitreview.git.models import Branch, ChangedFile, Commit, FileStatus, Tag

logger = logging.getLogger(__name__)

FIELD_SEP = "\x00"

# %H sha, %s subject, %an author, %ae email, %aI strict ISO date
LOG_FORMAT = "%H%x00%s%x00%an%x00%ae%x00%aI"
BRANCH_FORMAT = "%(refname:short)%00%(objectname)%00%(HEAD)"
TAG_FORMAT = "%(refname:short)%00%(objectname)"

_STATUS_BY_LETTER: Dict[str, FileStatus] = {
    "A": FileStatus.ADDED,
    "M": FileStatus.MODIFIED,
    "D": FileStatus.DELETED,
    "R": FileStatus.RENAMED,
    "C": FileStatus.COPIED,
}

# "dir/{old => new}/file" and "old => new" as printed by --numstat for renames
_BRACE_RENAME_RE = re.compile(r"^(?P<prefix>.*)\{(?P<old>[^{}]*) => (?P<new>[^{}]*)\}(?P<suffix>.*)$")
_PLAIN_RENAME_RE = re.compile(r"^(?P<old>.+) => (?P<new>.+)$")


class NameStatusRow(NamedTuple):
    status: str
    path: str
    old_path: Optional[str] = None


def split_lines(text: str) -> List[str]:
    """Split *text* on newlines, strip trailing CRs, drop empty lines."""
    return [line for line in (raw.rstrip("\r") for raw in text.split("\n")) if line]


def parse_listing(text: str) -> List[str]:
    """One path per line (``ls-files`` and friends)."""
    return split_lines(text)


def parse_log(text: str) -> List[Commit]:
    """Parse ``git log --format=LOG_FORMAT`` output."""
    commits: List[Commit] = []
    for line in split_lines(text):
        fields = line.split(FIELD_SEP)
        if len(fields) < 5 or not fields[0]:
            logger.warning("Skipping malformed log line: %r", line[:200])
            continue
        sha, message, author, email, date = fields[:5]
        commits.append(Commit(sha=sha, message=message, author=author, author_email=email, date=date))
    return commits


def parse_branches(text: str) -> List[Branch]:
    """Parse ``for-each-ref --format=BRANCH_FORMAT refs/heads/`` output."""
    branches: List[Branch] = []
    for line in split_lines(text):
        fields = line.split(FIELD_SEP)
        if len(fields) < 2:
            continue
        head_marker = fields[2] if len(fields) > 2 else ""
        branches.append(Branch(name=fields[0], sha=fields[1], is_current=head_marker == "*"))
    return branches


def parse_tags(text: str) -> List[Tag]:
    """Parse ``for-each-ref --format=TAG_FORMAT refs/tags/`` output."""
    tags: List[Tag] = []
    for line in split_lines(text):
        fields = line.split(FIELD_SEP)
        if len(fields) < 2:
            continue
        tags.append(Tag(name=fields[0], sha=fields[1]))
    return tags


def _count(column: str) -> int:
    # "-" marks a binary file
    if column == "-":
        return 0
    try:
        return int(column)
    except ValueError:
        return 0


def _rename_paths(path: str) -> Optional[Tuple[str, str]]:
    """Expand a numstat rename path into ``(old, new)``, or None."""
    m = _BRACE_RENAME_RE.match(path)
    if m:
        prefix, suffix = m.group("prefix"), m.group("suffix")
        old = (prefix + m.group("old") + suffix).replace("//", "/").lstrip("/")
        new = (prefix + m.group("new") + suffix).replace("//", "/").lstrip("/")
        return old, new
    m = _PLAIN_RENAME_RE.match(path)
    if m:
        return m.group("old"), m.group("new")
    return None


def parse_numstat(text: str) -> Dict[str, Tuple[int, int]]:
    """Parse ``--numstat`` output into ``path -> (additions, deletions)``.

    The path is everything after the first two tab-separated columns, so
    paths containing tabs survive. Rename paths are recorded under both
    their old and new names.
    """
    stats: Dict[str, Tuple[int, int]] = {}
    for line in split_lines(text):
        parts = line.split("\t", 2)
        if len(parts) < 3:
            continue
        added, deleted, path = parts
        counts = (_count(added), _count(deleted))
        stats[path] = counts
        renamed = _rename_paths(path)
        if renamed is not None:
            old, new = renamed
            stats.setdefault(new, counts)
            stats.setdefault(old, counts)
    return stats


def parse_name_status(text: str) -> List[NameStatusRow]:
    """Parse ``--name-status`` output, keeping git's order."""
    rows: List[NameStatusRow] = []
    for line in split_lines(text):
        parts = line.split("\t")
        if len(parts) < 2:
            continue
        if len(parts) > 2:
            rows.append(NameStatusRow(parts[0], parts[2], parts[1]))
        else:
            rows.append(NameStatusRow(parts[0], parts[1]))
    return rows


def status_from_letter(code: str) -> FileStatus:
    """Map a name-status code (``M``, ``R087``...) to a FileStatus."""
    return _STATUS_BY_LETTER.get(code[:1], FileStatus.MODIFIED)


def join_changed_files(numstat_text: str, name_status_text: str) -> List[ChangedFile]:
    """Join numstat counts onto name-status rows by path."""
    stats = parse_numstat(numstat_text)
    files: List[ChangedFile] = []
    for row in parse_name_status(name_status_text):
        counts = stats.get(row.path)
        if counts is None and row.old_path is not None:
            counts = stats.get(row.old_path)
        additions, deletions = counts if counts is not None else (0, 0)
        files.append(
            ChangedFile(
                path=row.path,
                status=status_from_letter(row.status),
                additions=additions,
                deletions=deletions,
                old_path=row.old_path,
            )
        )
    return files


def is_binary_numstat(text: str) -> bool:
    """True when numstat reports the binary sentinel (``-`` in both columns)."""
    return text.startswith("-\t-\t")

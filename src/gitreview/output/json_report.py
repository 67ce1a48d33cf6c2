"""JSON reporter: camelCase payloads for review UIs and scripts."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Sequence

from gitreview.git.models import (
    Branch,
    ChangedFile,
    Commit,
    Tag,
    WorkingTreeChanges,
    WorkingTreeData,
    WorkingTreeDiffResult,
)


def commit_to_dict(c: Commit) -> Dict[str, Any]:
    return {
        "sha": c.sha,
        "message": c.message,
        "author": c.author,
        "authorEmail": c.author_email,
        "date": c.date,
    }


def branch_to_dict(b: Branch) -> Dict[str, Any]:
    return {"name": b.name, "sha": b.sha, "isCurrent": b.is_current}


def tag_to_dict(t: Tag) -> Dict[str, Any]:
    return {"name": t.name, "sha": t.sha}


def changed_file_to_dict(f: ChangedFile) -> Dict[str, Any]:
    return {
        "path": f.path,
        "status": f.status.value,
        "additions": f.additions,
        "deletions": f.deletions,
        **({"oldPath": f.old_path} if f.old_path else {}),
    }


def changes_to_dict(changes: WorkingTreeChanges) -> Dict[str, Any]:
    return {
        "staged": [changed_file_to_dict(f) for f in changes.staged],
        "unstaged": [changed_file_to_dict(f) for f in changes.unstaged],
        "untracked": list(changes.untracked),
    }


def diff_result_to_dict(result: WorkingTreeDiffResult) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    if isinstance(result, WorkingTreeData):
        data["changes"] = changes_to_dict(result.changes)
    data.update(
        {
            "diff": result.diff,
            "untrackedDiffsCapped": result.untracked_diffs_capped,
            "untrackedTotal": result.untracked_total,
            "untrackedProcessed": result.untracked_processed,
        }
    )
    return data


def commit_view_to_dict(sha: str, diff: str, files: Sequence[ChangedFile]) -> Dict[str, Any]:
    return {"sha": sha, "diff": diff, "changedFiles": [changed_file_to_dict(f) for f in files]}


def render(payload: Any, *, indent: Optional[int] = 2) -> str:
    """Return formatted JSON string."""
    return json.dumps(payload, indent=indent)

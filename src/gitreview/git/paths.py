"""Confine caller-supplied file paths to a project root."""

from __future__ import annotations

import os
from pathlib import Path, PurePath
from typing import Union

from gitreview.git.errors import ValidationError

StrPath = Union[str, os.PathLike]


def confine(root_path: StrPath, candidate: StrPath) -> str:
    """Return *candidate* relative to *root_path*, or raise ValidationError.

    Relative candidates are taken from the root. Both sides are made
    absolute and normalised (``..`` collapsed, symlinks left alone), then
    containment is decided on the components of the relative path, so
    ``/home/user/proj2/x`` is not inside ``/home/user/proj``.
    """
    candidate_str = os.fspath(candidate)
    if not candidate_str:
        raise ValidationError("File path is required", root_path=os.fspath(root_path))

    root = os.path.abspath(os.fspath(root_path))
    full = candidate_str if os.path.isabs(candidate_str) else os.path.join(root, candidate_str)
    full = os.path.abspath(full)

    try:
        relative = os.path.relpath(full, root)
    except ValueError:
        # Windows: different drives have no relative path.
        raise ValidationError(
            "File path is outside project root", file_path=candidate_str, root_path=root
        ) from None

    parts = PurePath(relative).parts
    if os.path.isabs(relative) or (parts and parts[0] == os.pardir):
        raise ValidationError(
            "File path is outside project root", file_path=candidate_str, root_path=root
        )
    return Path(relative).as_posix()

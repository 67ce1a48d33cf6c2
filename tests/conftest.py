"""Shared test fixtures: scripted git runner, fake roots, temp git repos."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import pytest

from gitreview.git.runner import Completed, GitRunner
from gitreview.projects import ConfigProjectResolver


def ok(stdout: str = "") -> Completed:
    return Completed(0, stdout.encode("utf-8"))


def exit_code(code: int, stdout: str = "", stderr: str = "") -> Completed:
    return Completed(code, stdout.encode("utf-8"), stderr.encode("utf-8"))


class ScriptedRunner(GitRunner):
    """GitRunner that answers from a script instead of spawning git.

    ``script`` maps an argument tuple to a Completed result; unscripted
    commands succeed with empty output. Every invocation is recorded.
    """

    def __init__(self, script: Dict[Tuple[str, ...], Completed] | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.script = dict(script or {})
        self.calls: List[Tuple[str, ...]] = []

    def on(self, args: Sequence[str], completed: Completed) -> "ScriptedRunner":
        self.script[tuple(args)] = completed
        return self

    def count(self, *prefix: str) -> int:
        return sum(1 for call in self.calls if call[: len(prefix)] == prefix)

    async def _execute(self, root: Path, args: List[str], limit: int) -> Completed:
        self.calls.append(tuple(args))
        return self.script.get(tuple(args), ok())


@pytest.fixture
def fake_repo_root(tmp_path: Path) -> Path:
    """A directory that passes the ``.git`` check without being a repo."""
    (tmp_path / ".git").mkdir()
    return tmp_path


@pytest.fixture
def scripted_runner() -> ScriptedRunner:
    return ScriptedRunner()


@pytest.fixture
def resolver(fake_repo_root: Path) -> ConfigProjectResolver:
    return ConfigProjectResolver({"demo": str(fake_repo_root)})


def git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, check=True, text=True
    )
    return result.stdout


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository for integration tests."""
    subprocess.run(["git", "init", str(tmp_path)], capture_output=True, check=True)
    subprocess.run(
        ["git", "config", "user.email", "test@test.com"],
        cwd=tmp_path, capture_output=True, check=True,
    )
    subprocess.run(
        ["git", "config", "user.name", "Test"],
        cwd=tmp_path, capture_output=True, check=True,
    )
    subprocess.run(
        ["git", "config", "commit.gpgsign", "false"],
        cwd=tmp_path, capture_output=True, check=True,
    )
    # Initial commit
    readme = tmp_path / "README.md"
    readme.write_text("# Test\n")
    subprocess.run(["git", "add", "."], cwd=tmp_path, capture_output=True, check=True)
    subprocess.run(
        ["git", "commit", "-m", "init"],
        cwd=tmp_path, capture_output=True, check=True,
    )
    return tmp_path

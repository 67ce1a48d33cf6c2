"""Rich terminal reporter: tables for refs, commits, and changed files."""

from __future__ import annotations

from typing import Optional, Sequence

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from gitreview.git.models import (
    Branch,
    ChangedFile,
    Commit,
    FileStatus,
    Tag,
    WorkingTreeChanges,
    WorkingTreeData,
    WorkingTreeDiffResult,
)

_STATUS_STYLE = {
    FileStatus.ADDED: "bold green",
    FileStatus.MODIFIED: "bold yellow",
    FileStatus.DELETED: "bold red",
    FileStatus.RENAMED: "bold cyan",
    FileStatus.COPIED: "bold blue",
}

_STATUS_LETTER = {
    FileStatus.ADDED: "A",
    FileStatus.MODIFIED: "M",
    FileStatus.DELETED: "D",
    FileStatus.RENAMED: "R",
    FileStatus.COPIED: "C",
}


def _status_pill(status: FileStatus) -> Text:
    return Text(f" {_STATUS_LETTER[status]} ", style=_STATUS_STYLE.get(status, ""))


def _console(console: Optional[Console]) -> Console:
    return console or Console()


def render_commits(commits: Sequence[Commit], console: Optional[Console] = None) -> None:
    console = _console(console)
    if not commits:
        console.print("[dim]No commits.[/dim]")
        return
    table = Table(title="Commits", title_style="bold", border_style="dim")
    table.add_column("SHA", style="yellow", no_wrap=True)
    table.add_column("Date", style="dim", no_wrap=True)
    table.add_column("Author", style="cyan")
    table.add_column("Message")
    for c in commits:
        table.add_row(c.sha[:10], c.date, c.author, c.message)
    console.print(table)


def render_branches(branches: Sequence[Branch], console: Optional[Console] = None) -> None:
    console = _console(console)
    if not branches:
        console.print("[dim]No branches.[/dim]")
        return
    table = Table(title="Branches", title_style="bold", border_style="dim")
    table.add_column("", width=1)
    table.add_column("Name", style="cyan")
    table.add_column("SHA", style="yellow", no_wrap=True)
    for b in branches:
        table.add_row("*" if b.is_current else "", b.name, b.sha[:10])
    console.print(table)


def render_tags(tags: Sequence[Tag], console: Optional[Console] = None) -> None:
    console = _console(console)
    if not tags:
        console.print("[dim]No tags.[/dim]")
        return
    table = Table(title="Tags", title_style="bold", border_style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("SHA", style="yellow", no_wrap=True)
    for t in tags:
        table.add_row(t.name, t.sha[:10])
    console.print(table)


def render_changed_files(
    files: Sequence[ChangedFile], console: Optional[Console] = None, *, title: str = "Changed files"
) -> None:
    console = _console(console)
    if not files:
        console.print(f"[dim]{title}: none[/dim]")
        return
    table = Table(title=title, title_style="bold", border_style="dim")
    table.add_column("Status", justify="center", width=8)
    table.add_column("Path", style="magenta")
    table.add_column("+", justify="right", style="green")
    table.add_column("-", justify="right", style="red")
    for f in files:
        path = f"{f.old_path} → {f.path}" if f.old_path else f.path
        table.add_row(_status_pill(f.status), path, str(f.additions), str(f.deletions))
    console.print(table)


def render_changes(changes: WorkingTreeChanges, console: Optional[Console] = None) -> None:
    console = _console(console)
    render_changed_files(changes.staged, console, title="Staged")
    render_changed_files(changes.unstaged, console, title="Unstaged")
    if changes.untracked:
        console.print()
        console.print(f"[bold]Untracked ({len(changes.untracked)})[/bold]")
        for path in changes.untracked:
            console.print(f"  [green]?[/green] {path}")


def render_diff(diff: str, console: Optional[Console] = None) -> None:
    console = _console(console)
    if not diff.strip():
        console.print("[dim]No differences.[/dim]")
        return
    console.print(Syntax(diff, "diff", theme="ansi_dark", word_wrap=False))


def render_working_tree(result: WorkingTreeDiffResult, console: Optional[Console] = None) -> None:
    console = _console(console)
    if isinstance(result, WorkingTreeData):
        render_changes(result.changes, console)
    if result.diff:
        console.print()
        render_diff(result.diff, console)
    if result.untracked_diffs_capped:
        console.print(
            f"[yellow]⚠  Showing diffs for {result.untracked_processed} of "
            f"{result.untracked_total} untracked files.[/yellow]"
        )

"""gitreview CLI — Typer application over the repository engine."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Optional, TypeVar

import typer
from rich.console import Console

from gitreview import __version__
from gitreview.git.models import WorkingTreeFilter

app = typer.Typer(
    name="gitreview",
    help="Inspect commits, refs, and working-tree diffs of a git repository.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(stderr=True)

# Upper bound for `commits --limit`; the engine itself does not clamp.
MAX_COMMIT_LIMIT = 500

EXIT_IO = 1
EXIT_VALIDATION = 2
EXIT_NOT_FOUND = 3

T = TypeVar("T")


@dataclass
class _Session:
    service: Any
    project_id: str
    root_path: Optional[Path]
    format: str


def _configure_logging(verbose: bool, debug: bool) -> None:
    from rich.logging import RichHandler

    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=debug)],
        force=True,
    )


def _find_repo_root(start: Path) -> Path:
    """Nearest ancestor of *start* holding a .git entry, else *start*."""
    start = start.resolve()
    for candidate in (start, *start.parents):
        if (candidate / ".git").exists():
            return candidate
    return start


def _session(ctx: typer.Context) -> _Session:
    session = ctx.obj
    if not isinstance(session, _Session):
        console.print("[bold red]Error:[/bold red] CLI session was not initialised")
        raise typer.Exit(code=EXIT_VALIDATION)
    return session


def _run(coro: Awaitable[T]) -> T:
    """Run *coro*, mapping engine errors onto exit codes."""
    from gitreview.git.errors import GitIOError, NotFoundError, ValidationError

    try:
        return asyncio.run(coro)  # type: ignore[arg-type]
    except ValidationError as exc:
        console.print(f"[bold red]Invalid request:[/bold red] {exc.message}")
        raise typer.Exit(code=EXIT_VALIDATION) from exc
    except NotFoundError as exc:
        console.print(f"[bold red]Not found:[/bold red] {exc.message}")
        raise typer.Exit(code=EXIT_NOT_FOUND) from exc
    except GitIOError as exc:
        console.print(f"[bold red]Git error:[/bold red] {exc}")
        raise typer.Exit(code=EXIT_IO) from exc


def _emit_json(payload: Any) -> None:
    from gitreview.output import json_report

    print(json_report.render(payload))


# ── refs and history ─────────────────────────────────────────────────────────


@app.command()
def commits(
    ctx: typer.Context,
    ref: Optional[str] = typer.Option(None, "--ref", "-r", help="Start from this ref (default HEAD)"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help=f"Max commits (1-{MAX_COMMIT_LIMIT})"),
) -> None:
    """List recent commits."""
    from gitreview.output import json_report, terminal

    s = _session(ctx)
    if limit is not None:
        limit = max(1, min(limit, MAX_COMMIT_LIMIT))
    result = _run(s.service.list_commits(s.project_id, ref=ref, limit=limit, root_path=s.root_path))
    if s.format == "json":
        _emit_json([json_report.commit_to_dict(c) for c in result])
    else:
        terminal.render_commits(result)


@app.command()
def branches(ctx: typer.Context) -> None:
    """List local branches."""
    from gitreview.output import json_report, terminal

    s = _session(ctx)
    result = _run(s.service.list_branches(s.project_id, root_path=s.root_path))
    if s.format == "json":
        _emit_json([json_report.branch_to_dict(b) for b in result])
    else:
        terminal.render_branches(result)


@app.command()
def tags(ctx: typer.Context) -> None:
    """List tags."""
    from gitreview.output import json_report, terminal

    s = _session(ctx)
    result = _run(s.service.list_tags(s.project_id, root_path=s.root_path))
    if s.format == "json":
        _emit_json([json_report.tag_to_dict(t) for t in result])
    else:
        terminal.render_tags(result)


@app.command()
def resolve(ctx: typer.Context, ref: str = typer.Argument(..., help="Branch, tag, or commit")) -> None:
    """Resolve a ref to its full SHA."""
    s = _session(ctx)
    sha = _run(s.service.resolve_ref(s.project_id, ref, root_path=s.root_path))
    if s.format == "json":
        _emit_json({"ref": ref, "sha": sha})
    else:
        print(sha)


@app.command("current-branch")
def current_branch(ctx: typer.Context) -> None:
    """Print the current branch (nothing when HEAD is detached)."""
    s = _session(ctx)
    name = _run(s.service.get_current_branch(s.project_id, root_path=s.root_path))
    if s.format == "json":
        _emit_json({"branch": name})
    elif name:
        print(name)
    else:
        console.print("[dim]HEAD is detached or unavailable.[/dim]")


@app.command("is-repo")
def is_repo(ctx: typer.Context) -> None:
    """Exit 0 if the project is a git repository, 1 otherwise."""
    s = _session(ctx)
    present = _run(s.service.is_repository(s.project_id, root_path=s.root_path))
    if s.format == "json":
        _emit_json({"isRepository": present})
    if not present:
        raise typer.Exit(code=1)


# ── diffs ────────────────────────────────────────────────────────────────────


@app.command()
def diff(
    ctx: typer.Context,
    base: str = typer.Argument(..., help="Base ref"),
    head: str = typer.Argument(..., help="Head ref"),
) -> None:
    """Unified diff between two refs."""
    from gitreview.output import terminal

    s = _session(ctx)
    text = _run(s.service.get_diff(s.project_id, base, head, root_path=s.root_path))
    if s.format == "json":
        _emit_json({"diff": text})
    else:
        terminal.render_diff(text)


@app.command("changed-files")
def changed_files(
    ctx: typer.Context,
    base: str = typer.Argument(..., help="Base ref"),
    head: str = typer.Argument(..., help="Head ref"),
) -> None:
    """Files changed between two refs, with line counts."""
    from gitreview.output import json_report, terminal

    s = _session(ctx)
    files = _run(s.service.get_changed_files(s.project_id, base, head, root_path=s.root_path))
    if s.format == "json":
        _emit_json([json_report.changed_file_to_dict(f) for f in files])
    else:
        terminal.render_changed_files(files)


@app.command()
def commit(ctx: typer.Context, sha: str = typer.Argument(..., help="Commit SHA (4-40 hex)")) -> None:
    """Diff and changed files of a single commit."""
    from gitreview.output import json_report, terminal

    s = _session(ctx)

    async def _both():
        return await asyncio.gather(
            s.service.get_commit_diff(s.project_id, sha, root_path=s.root_path),
            s.service.get_commit_changed_files(s.project_id, sha, root_path=s.root_path),
        )

    text, files = _run(_both())
    if s.format == "json":
        _emit_json(json_report.commit_view_to_dict(sha, text, files))
    else:
        terminal.render_changed_files(files)
        terminal.render_diff(text)


@app.command()
def show(
    ctx: typer.Context,
    ref: str = typer.Argument(..., help="Ref to read from"),
    path: str = typer.Argument(..., help="File path inside the project"),
) -> None:
    """Print a file as it exists at a ref."""
    s = _session(ctx)
    content = _run(s.service.get_file_content(s.project_id, ref, path, root_path=s.root_path))
    if s.format == "json":
        _emit_json({"ref": ref, "path": path, "content": content})
    else:
        typer.echo(content, nl=False)


@app.command("working-tree")
def working_tree(
    ctx: typer.Context,
    filter: WorkingTreeFilter = typer.Option(WorkingTreeFilter.ALL, "--filter", "-f", help="Which changes to include"),
    with_diff: bool = typer.Option(True, "--diff/--no-diff", help="Include the unified diff"),
) -> None:
    """Staged, unstaged, and untracked changes (and their diff)."""
    from gitreview.output import json_report, terminal

    s = _session(ctx)
    if with_diff:
        data = _run(s.service.get_working_tree_data(s.project_id, filter, root_path=s.root_path))
        if s.format == "json":
            _emit_json(json_report.diff_result_to_dict(data))
        else:
            terminal.render_working_tree(data)
    else:
        changes = _run(s.service.get_working_tree_changes(s.project_id, filter, root_path=s.root_path))
        if s.format == "json":
            _emit_json(json_report.changes_to_dict(changes))
        else:
            terminal.render_changes(changes)


# ── init ─────────────────────────────────────────────────────────────────────


@app.command()
def init() -> None:
    """Generate a starter .gitreview.toml in the current directory."""
    from gitreview.config.defaults import DEFAULT_TOML
    from gitreview.config.loader import CONFIG_FILENAME

    config_path = Path.cwd() / CONFIG_FILENAME
    if config_path.exists():
        console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILENAME} already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(DEFAULT_TOML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")


# ── version / global options ─────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"gitreview {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project id from [projects] in the config"),
    repo: Optional[Path] = typer.Option(None, "--repo", help="Repository root (default: enclosing repo of cwd)"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .gitreview.toml"),
    format: Optional[str] = typer.Option(None, "--format", help="Output format: terminal | json"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
    debug: bool = typer.Option(False, "--debug", help="Debug logging, including every git command"),
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
) -> None:
    """gitreview: repository introspection and diffs for code review."""
    from gitreview.config.loader import ConfigError, load_config
    from gitreview.git.service import RepositoryService
    from gitreview.projects import ConfigProjectResolver

    _configure_logging(verbose, debug)

    # init writes the config file; it must not depend on parsing one.
    if ctx.invoked_subcommand == "init":
        return

    if project and repo:
        console.print("[bold red]Error:[/bold red] use either --project or --repo, not both")
        raise typer.Exit(code=EXIT_VALIDATION)

    try:
        cfg = load_config(Path.cwd(), config)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        raise typer.Exit(code=EXIT_VALIDATION) from exc

    if format:
        if format not in ("terminal", "json"):
            console.print(f"[bold red]Invalid format:[/bold red] {format}")
            raise typer.Exit(code=EXIT_VALIDATION)
        cfg.output.format = format  # type: ignore[assignment]

    resolver = ConfigProjectResolver(cfg.projects, base_dir=Path.cwd())
    service = RepositoryService(resolver, config=cfg)

    if project:
        root_path: Optional[Path] = None
        project_id = project
    else:
        root_path = repo.resolve() if repo else _find_repo_root(Path.cwd())
        project_id = str(root_path)

    ctx.obj = _Session(service=service, project_id=project_id, root_path=root_path, format=cfg.output.format)

"""Project root resolution: opaque project id -> absolute root path."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping, Protocol, Union

from gitreview.git.errors import NotFoundError


class ProjectResolver(Protocol):
    """Anything that can map a project id to its root directory."""

    async def get_root(self, project_id: str) -> Path:
        """Return the absolute root of *project_id*.

        Raises:
            NotFoundError: If the project is unknown.
        """
        ...


class ConfigProjectResolver:
    """Resolve project ids from the ``[projects]`` table of the config."""

    def __init__(self, projects: Mapping[str, Union[str, Path]], base_dir: Path | None = None) -> None:
        base = (base_dir or Path.cwd()).resolve()
        self._roots: Dict[str, Path] = {}
        for project_id, root in projects.items():
            path = Path(root).expanduser()
            self._roots[project_id] = path if path.is_absolute() else base / path

    @property
    def project_ids(self) -> list[str]:
        return sorted(self._roots)

    async def get_root(self, project_id: str) -> Path:
        try:
            return self._roots[project_id]
        except KeyError:
            raise NotFoundError(f"Project not found: {project_id}", project_id=project_id) from None

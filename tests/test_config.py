"""Tests for config loading, validation, and env var overrides."""

import asyncio
from pathlib import Path

import pytest

from gitreview.config.loader import ConfigError, load_config
from gitreview.git.errors import NotFoundError
from gitreview.projects import ConfigProjectResolver


class TestConfigLoading:
    def test_default_config(self, tmp_path: Path):
        cfg = load_config(tmp_path)
        assert cfg.limits.max_untracked_diffs == 50
        assert cfg.limits.max_untracked_file_size == 1024 * 1024
        assert cfg.limits.command_timeout == 30.0
        assert cfg.output.format == "terminal"
        assert cfg.projects == {}

    def test_custom_toml(self, tmp_path: Path):
        toml_path = tmp_path / ".gitreview.toml"
        toml_path.write_text(
            'version = "1.0"\n'
            '[limits]\n'
            'max_untracked_diffs = 10\n'
            'untracked_workers = 8\n'
            'unknown_key = 1\n'
            '[git]\n'
            'binary = "/usr/bin/git"\n'
            '[projects]\n'
            'web = "/srv/web"\n'
        )
        cfg = load_config(tmp_path)
        assert cfg.limits.max_untracked_diffs == 10
        assert cfg.limits.untracked_workers == 8
        assert cfg.git.binary == "/usr/bin/git"
        assert cfg.projects == {"web": "/srv/web"}

    def test_config_override_path(self, tmp_path: Path):
        custom = tmp_path / "custom.toml"
        custom.write_text('[output]\nformat = "json"\n')
        cfg = load_config(tmp_path, config_override=str(custom))
        assert cfg.output.format == "json"

    def test_missing_override_raises(self, tmp_path: Path):
        with pytest.raises(ConfigError):
            load_config(tmp_path, config_override="/nonexistent/config.toml")

    def test_invalid_toml_raises(self, tmp_path: Path):
        bad_toml = tmp_path / ".gitreview.toml"
        bad_toml.write_text("this is not valid [toml")
        with pytest.raises(ConfigError):
            load_config(tmp_path)

    def test_projects_must_be_table(self, tmp_path: Path):
        (tmp_path / ".gitreview.toml").write_text('projects = "nope"\n')
        with pytest.raises(ConfigError):
            load_config(tmp_path)


class TestValidation:
    def test_negative_cap_rejected(self, tmp_path: Path):
        (tmp_path / ".gitreview.toml").write_text("[limits]\nmax_untracked_diffs = -1\n")
        with pytest.raises(ConfigError, match="max_untracked_diffs"):
            load_config(tmp_path)

    def test_zero_workers_rejected(self, tmp_path: Path):
        (tmp_path / ".gitreview.toml").write_text("[limits]\nuntracked_workers = 0\n")
        with pytest.raises(ConfigError, match="untracked_workers"):
            load_config(tmp_path)

    def test_non_numeric_timeout_rejected(self, tmp_path: Path):
        (tmp_path / ".gitreview.toml").write_text('[limits]\ncommand_timeout = "soon"\n')
        with pytest.raises(ConfigError, match="command_timeout"):
            load_config(tmp_path)

    def test_bad_format_rejected(self, tmp_path: Path):
        (tmp_path / ".gitreview.toml").write_text('[output]\nformat = "xml"\n')
        with pytest.raises(ConfigError):
            load_config(tmp_path)


class TestEnvVarOverrides:
    def test_cap_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("GITREVIEW_MAX_UNTRACKED_DIFFS", "5")
        monkeypatch.setenv("GITREVIEW_MAX_UNTRACKED_FILE_SIZE", "2048")
        cfg = load_config(tmp_path)
        assert cfg.limits.max_untracked_diffs == 5
        assert cfg.limits.max_untracked_file_size == 2048

    def test_format_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("GITREVIEW_FORMAT", "json")
        cfg = load_config(tmp_path)
        assert cfg.output.format == "json"

    def test_timeout_disabled(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("GITREVIEW_COMMAND_TIMEOUT", "off")
        cfg = load_config(tmp_path)
        assert cfg.limits.command_timeout is None

    def test_config_path_from_env(self, tmp_path: Path, monkeypatch):
        custom = tmp_path / "elsewhere.toml"
        custom.write_text('[git]\nbinary = "git2"\n')
        monkeypatch.setenv("GITREVIEW_CONFIG", str(custom))
        cfg = load_config(tmp_path)
        assert cfg.git.binary == "git2"

    def test_invalid_env_ignored(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("GITREVIEW_MAX_UNTRACKED_DIFFS", "lots")
        monkeypatch.setenv("GITREVIEW_FORMAT", "yaml")
        cfg = load_config(tmp_path)
        assert cfg.limits.max_untracked_diffs == 50  # default unchanged
        assert cfg.output.format == "terminal"


class TestProjectResolver:
    def test_relative_roots_resolved_against_base(self, tmp_path: Path):
        resolver = ConfigProjectResolver({"a": "repos/a", "b": "/abs/b"}, base_dir=tmp_path)
        assert asyncio.run(resolver.get_root("a")) == tmp_path.resolve() / "repos" / "a"
        assert asyncio.run(resolver.get_root("b")) == Path("/abs/b")
        assert resolver.project_ids == ["a", "b"]

    def test_unknown_project(self, tmp_path: Path):
        resolver = ConfigProjectResolver({}, base_dir=tmp_path)
        with pytest.raises(NotFoundError, match="Project not found"):
            asyncio.run(resolver.get_root("ghost"))

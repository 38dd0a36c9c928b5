"""Tests for agentdeck.tasks.config module."""

import logging

import pytest

from agentdeck.tasks.config import (
    ConfigError,
    discover_projects,
    find_project_config,
    find_project_for_dir,
    load_global_config,
    load_project_config,
    merge_config,
    parse_duration,
)
from agentdeck.tasks.types import GlobalConfig, ProjectConfig


def _write_project(directory, body: str):
    directory.mkdir(parents=True, exist_ok=True)
    (directory / ".agentdeck.yaml").write_text(body)
    return directory


class TestParseDuration:
    """Tests for parse_duration()."""

    @pytest.mark.parametrize("value,expected", [
        (30, 30.0),
        (2.5, 2.5),
        ("30s", 30.0),
        ("500ms", 0.5),
        ("5m", 300.0),
        ("1h", 3600.0),
        ("1m30s", 90.0),
        (" 10s ", 10.0),
    ])
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    def test_empty(self):
        assert parse_duration(None) is None
        assert parse_duration("") is None

    @pytest.mark.parametrize("value", ["30", "soon", "10x", "s30", -1, True])
    def test_invalid(self, value):
        with pytest.raises(ConfigError, match="Invalid duration"):
            parse_duration(value)


class TestLoadProjectConfig:
    """Tests for load_project_config() / find_project_config()."""

    def test_loads_provider_and_args(self, tmp_path):
        _write_project(tmp_path, "tasks:\n  provider: scripts/tasks.sh\n  args:\n    repo: acme/widgets\n    limit: 20\n")

        config = load_project_config(tmp_path / ".agentdeck.yaml")

        assert config.project_dir == str(tmp_path.resolve())
        assert config.provider == "scripts/tasks.sh"
        assert config.args == {"repo": "acme/widgets", "limit": "20"}

    def test_empty_file(self, tmp_path):
        _write_project(tmp_path, "")
        config = load_project_config(tmp_path / ".agentdeck.yaml")
        assert config.provider == ""
        assert config.args == {}

    def test_invalid_yaml(self, tmp_path):
        _write_project(tmp_path, "tasks: [unclosed\n")
        with pytest.raises(ConfigError, match="Failed to read"):
            load_project_config(tmp_path / ".agentdeck.yaml")

    def test_unknown_task_key_rejected(self, tmp_path):
        _write_project(tmp_path, "tasks:\n  provider: x\n  interval: 5\n")
        with pytest.raises(ConfigError, match="Invalid config"):
            load_project_config(tmp_path / ".agentdeck.yaml")

    def test_find_walks_up(self, tmp_path):
        _write_project(tmp_path / "proj", "tasks:\n  provider: tasks.sh\n")
        nested = tmp_path / "proj" / "src" / "pkg"
        nested.mkdir(parents=True)

        config = find_project_config(str(nested))

        assert config.project_dir == str((tmp_path / "proj").resolve())

    def test_find_returns_none_without_config(self, tmp_path):
        # tmp_path is not inside any project
        assert find_project_config(str(tmp_path)) is None


class TestLoadGlobalConfig:
    """Tests for load_global_config()."""

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_global_config(tmp_path / "nope.yaml") == GlobalConfig()

    def test_missing_required_file_raises(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_global_config(tmp_path / "nope.yaml", required=True)

    def test_required_file_present(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("tasks:\n  default_provider: github\n")
        assert load_global_config(path, required=True).default_provider == "github"

    def test_env_override(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("tasks:\n  default_provider: github\n")
        monkeypatch.setenv("AGENTDECK_CONFIG", str(path))

        assert load_global_config().default_provider == "github"

    def test_full_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "tasks:\n"
            "  default_provider: github\n"
            "  interval: 2m\n"
            "  timeout: 45s\n"
            "  providers_dir: ~/providers\n"
            "  max_concurrency: 4\n"
            "  status_map:\n"
            "    Doing: in_progress\n"
            "projects:\n"
            "  - ~/src/widgets\n"
        )

        config = load_global_config(path)

        assert config.default_provider == "github"
        assert config.refresh_interval == 120.0
        assert config.provider_timeout == 45.0
        assert config.providers_dir == "~/providers"
        assert config.max_concurrency == 4
        assert config.status_map == {"Doing": "in_progress"}
        assert config.projects == ["~/src/widgets"]

    def test_invalid_max_concurrency(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("tasks:\n  max_concurrency: 0\n")
        with pytest.raises(ConfigError):
            load_global_config(path)

    def test_invalid_duration(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("tasks:\n  timeout: forever\n")
        with pytest.raises(ConfigError, match="Invalid duration"):
            load_global_config(path)


class TestMergeConfig:
    """Tests for merge_config()."""

    def test_fills_provider(self):
        project = ProjectConfig(project_dir="/p", provider="")
        merged = merge_config(project, GlobalConfig(default_provider="github"))
        assert merged.provider == "github"

    def test_project_provider_wins(self):
        project = ProjectConfig(project_dir="/p", provider="local.sh")
        assert merge_config(project, GlobalConfig(default_provider="github")).provider == "local.sh"

    def test_no_global(self):
        project = ProjectConfig(project_dir="/p", provider="")
        assert merge_config(project, None) is project


class TestDiscoverProjects:
    """Tests for discover_projects()."""

    def test_dedupes_dirs_in_same_project(self, tmp_path):
        proj = _write_project(tmp_path / "proj", "tasks:\n  provider: tasks.sh\n")
        (proj / "src").mkdir()

        configs = discover_projects([str(proj), str(proj / "src"), str(proj)])

        assert [c.project_dir for c in configs] == [str(proj.resolve())]

    def test_applies_default_provider(self, tmp_path):
        proj = _write_project(tmp_path / "proj", "tasks: {}\n")

        configs = discover_projects([str(proj)], GlobalConfig(default_provider="github"))

        assert configs[0].provider == "github"

    def test_skips_project_without_provider(self, tmp_path, caplog):
        proj = _write_project(tmp_path / "proj", "tasks: {}\n")

        with caplog.at_level(logging.DEBUG, logger="agentdeck.tasks.config"):
            assert discover_projects([str(proj)]) == []
        assert "No provider configured" in caplog.text

    def test_skips_invalid_config_and_keeps_others(self, tmp_path, caplog):
        bad = _write_project(tmp_path / "bad", "tasks: [oops\n")
        good = _write_project(tmp_path / "good", "tasks:\n  provider: tasks.sh\n")

        with caplog.at_level(logging.WARNING, logger="agentdeck.tasks.config"):
            configs = discover_projects([str(bad), str(good)])

        assert [c.project_dir for c in configs] == [str(good.resolve())]
        assert "Skipping" in caplog.text

    def test_skips_empty_and_unconfigured_dirs(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        assert discover_projects(["", str(plain)]) == []


class TestFindProjectForDir:
    """Tests for find_project_for_dir()."""

    def test_matches_nested_dir(self):
        configs = [ProjectConfig(project_dir="/src/app", provider="p")]
        assert find_project_for_dir("/src/app/lib", configs) == "/src/app"
        assert find_project_for_dir("/src/app", configs) == "/src/app"

    def test_prefix_is_not_a_match(self):
        configs = [ProjectConfig(project_dir="/src/app", provider="p")]
        assert find_project_for_dir("/src/application", configs) == ""

    def test_empty(self):
        assert find_project_for_dir("", []) == ""

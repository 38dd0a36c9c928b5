"""Tests for the agentdeck CLI and the tasks command."""

import json
import logging
from argparse import Namespace

import pytest

from agentdeck.cli import build_parser, configure_logging, get_log_file, main
from agentdeck.commands.tasks import snapshot_to_dict
from agentdeck.tasks import ProviderResult, ProviderTimeout, Task, TaskGroup, TaskSnapshot


@pytest.fixture
def no_global_config(tmp_path, monkeypatch):
    """Point the global config at a file that doesn't exist."""
    monkeypatch.setenv("AGENTDECK_CONFIG", str(tmp_path / "missing.yaml"))


@pytest.fixture
def project(tmp_path, write_script):
    proj = tmp_path / "proj"
    proj.mkdir()
    (proj / ".agentdeck.yaml").write_text("tasks:\n  provider: provider.sh\n")
    write_script(
        proj,
        "provider.sh",
        "echo '{\"tasks\": [{\"id\": \"1\", \"title\": \"Do X\", \"status\": \"open\"}]}'\n",
    )
    return proj


class TestBuildParser:
    """Tests for build_parser()."""

    def test_tasks_args(self):
        args = build_parser().parse_args(["tasks", "--json", "--timeout", "5", "--max-workers", "2", "/a", "/b"])
        assert args.command == "tasks"
        assert args.json is True
        assert args.timeout == 5.0
        assert args.max_workers == 2
        assert args.dirs == ["/a", "/b"]

    def test_watch_defaults(self):
        args = build_parser().parse_args(["watch"])
        assert args.dirs == []
        assert args.timeout is None

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestLogging:
    """Tests for get_log_file() / configure_logging()."""

    def test_no_log_file_by_default(self, monkeypatch):
        monkeypatch.delenv("AGENTDECK_DEBUG", raising=False)
        assert get_log_file(Namespace(log_file=None)) is None

    def test_debug_env_uses_default_log(self, monkeypatch):
        monkeypatch.setenv("AGENTDECK_DEBUG", "1")
        path = get_log_file(Namespace(log_file=None))
        assert path is not None
        assert path.name == "debug.log"

    def test_log_file_flag(self, tmp_path):
        assert get_log_file(Namespace(log_file=str(tmp_path / "x.log"))) == tmp_path / "x.log"

    def test_tui_without_log_file_adds_null_handler(self, monkeypatch):
        monkeypatch.delenv("AGENTDECK_DEBUG", raising=False)
        root = logging.getLogger()
        before = list(root.handlers)
        try:
            configure_logging(Namespace(log_file=None, verbose=False), tui=True)
            added = [h for h in root.handlers if h not in before]
            assert all(isinstance(h, logging.NullHandler) for h in added)
        finally:
            root.handlers = before


class TestSnapshotToDict:
    """Tests for snapshot_to_dict()."""

    def test_success_and_error(self):
        group = TaskGroup(id="g", title="G", status="todo", tasks=[Task(id="1", title="t", status="open")])
        snapshot = TaskSnapshot(
            results_by_project={"/ok": ProviderResult(groups=[group])},
            groups_by_project={"/ok": [group]},
            errors={"/slow": ProviderTimeout(message="provider timed out after 1s", stderr="partial", timeout=1.0)},
        )

        data = snapshot_to_dict(snapshot)

        assert data["projects"]["/ok"]["task_count"] == 1
        assert data["projects"]["/ok"]["groups"][0]["tasks"][0]["title"] == "t"
        assert data["projects"]["/slow"] == {
            "error": {"kind": "timeout", "message": "provider timed out after 1s", "stderr": "partial"},
        }
        json.dumps(data)


class TestTasksCommand:
    """End-to-end tests for `agentdeck tasks`."""

    def test_json_output(self, project, no_global_config, capsys):
        assert main(["tasks", "--json", str(project)]) == 0

        data = json.loads(capsys.readouterr().out)
        entry = data["projects"][str(project.resolve())]
        assert entry["task_count"] == 1
        assert entry["groups"][0]["tasks"][0]["title"] == "Do X"

    def test_text_output(self, project, no_global_config, capsys):
        assert main(["tasks", str(project)]) == 0

        out = capsys.readouterr().out
        assert "Do X" in out
        assert "(0/1)" in out

    def test_provider_error_exit_code(self, project, no_global_config, write_script, capsys):
        write_script(project, "provider.sh", "echo 'nope' >&2\nexit 1\n")

        assert main(["tasks", str(project)]) == 1
        assert "ERROR (exec)" in capsys.readouterr().out

    def test_no_projects(self, tmp_path, no_global_config, capsys):
        assert main(["tasks", str(tmp_path)]) == 2
        assert "No projects" in capsys.readouterr().out

    def test_invalid_global_config(self, tmp_path, project, capsys):
        config = tmp_path / "config.yaml"
        config.write_text("tasks:\n  bogus: 1\n")

        assert main(["--config", str(config), "tasks", str(project)]) == 2
        assert "ERROR" in capsys.readouterr().out

    def test_missing_explicit_config(self, tmp_path, project, capsys):
        assert main(["--config", str(tmp_path / "missing.yaml"), "tasks", str(project)]) == 2
        assert "config file not found" in capsys.readouterr().out

    def test_missing_default_config_uses_defaults(self, project, no_global_config, capsys):
        assert main(["tasks", "--json", str(project)]) == 0

    def test_projects_from_global_config(self, tmp_path, project, monkeypatch, capsys):
        config = tmp_path / "config.yaml"
        config.write_text(f"projects:\n  - {project}\n")
        monkeypatch.chdir(tmp_path)

        assert main(["--config", str(config), "tasks", "--json"]) == 0
        assert str(project.resolve()) in json.loads(capsys.readouterr().out)["projects"]

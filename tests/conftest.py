"""Shared fixtures for task provider tests."""

import os
import sys

import pytest


@pytest.fixture
def write_script():
    """Write an executable shell script and return its path."""
    if sys.platform == "win32":
        pytest.skip("shell script providers need a POSIX shell")

    def _write(directory, name: str, body: str) -> str:
        path = directory / name
        path.write_text("#!/bin/sh\n" + body)
        os.chmod(path, 0o755)
        return str(path)

    return _write


@pytest.fixture
def make_project(tmp_path, write_script):
    """Create a project dir with a provider.sh that prints the given stdout."""

    def _make(name: str, stdout: str = "", body: str | None = None) -> str:
        project = tmp_path / name
        project.mkdir()
        if body is None:
            body = f"cat <<'EOF'\n{stdout}\nEOF\n"
        write_script(project, "provider.sh", body)
        return str(project)

    return _make

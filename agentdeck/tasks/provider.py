"""Task provider execution with timeout handling."""

import logging
import os
import shutil
import signal
import subprocess
import sys
import time
from pathlib import Path
from typing import Optional

from agentdeck.tasks.errors import (
    ProviderExecutionFailed,
    ProviderNotFound,
    ProviderTimeout,
    ResultParseError,
)
from agentdeck.tasks.types import (
    GlobalConfig,
    ProjectConfig,
    ProviderResult,
    parse_provider_output,
)

logger = logging.getLogger(__name__)

# Provider args are exported as AGENTDECK_TASK_ARG_<KEY>
ENV_VAR_PREFIX = "AGENTDECK_TASK_ARG_"

# Suffixes tried when a bare name is looked up in the providers dir
BUILTIN_SUFFIXES = ("", ".sh", ".py")

# Providers shipped with agentdeck, by the name used in config files
BUNDLED_PROVIDERS_DIR = Path(__file__).parent.parent / "providers"
BUNDLED_PROVIDERS = {
    "github-issues": "github_issues.py",
    "markdown-tasks": "markdown_tasks.py",
}

# How long to wait for pipes to drain after killing a timed-out provider
KILL_GRACE_SECONDS = 1.0


def build_env_vars(args: Optional[dict]) -> dict[str, str]:
    """Convert config args to AGENTDECK_TASK_ARG_* environment variables."""
    if not args:
        return {}
    return {f"{ENV_VAR_PREFIX}{key.upper()}": str(value) for key, value in args.items()}


def resolve_provider(name: str, project_dir: str, providers_dir: str = "") -> str:
    """
    Resolve a provider name to an executable path.

    Lookup order:
    - Absolute paths (after ~ expansion) are used as-is.
    - Paths with a separator are resolved relative to project_dir.
    - Bare names are tried in project_dir, then providers_dir (with
      .sh/.py suffixes), then the bundled providers, then PATH.

    Raises:
        ProviderNotFound: If nothing matches
    """
    if not name:
        raise ProviderNotFound(message="no provider configured")

    expanded = os.path.expanduser(name)
    candidates: list[Path] = []

    if os.path.isabs(expanded):
        candidates.append(Path(expanded))
    else:
        candidates.append(Path(project_dir) / expanded)
        if providers_dir and os.sep not in expanded:
            base = Path(os.path.expanduser(providers_dir))
            candidates.extend(base / f"{expanded}{suffix}" for suffix in BUILTIN_SUFFIXES)
        if expanded in BUNDLED_PROVIDERS:
            candidates.append(BUNDLED_PROVIDERS_DIR / BUNDLED_PROVIDERS[expanded])

    for candidate in candidates:
        if candidate.is_file():
            return os.path.abspath(candidate)

    if os.sep not in expanded:
        found = shutil.which(expanded)
        if found:
            return found

    raise ProviderNotFound(message=f"provider script not found: {name}")


def provider_command(script: str) -> list[str]:
    """Argv for a resolved provider. Python providers run under this interpreter."""
    if script.endswith(".py"):
        return [sys.executable, script]
    return [script]


def _decode_stderr(data: Optional[bytes]) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


def _kill_process_group(process: subprocess.Popen) -> None:
    """Kill the provider and anything it spawned."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass  # Already exited


def execute_provider(
    config: ProjectConfig,
    timeout: float,
    global_config: Optional[GlobalConfig] = None,
) -> ProviderResult:
    """
    Run a project's provider and parse its output.

    The provider runs with project_dir as cwd, in its own session so the
    whole process group can be killed on timeout.

    Args:
        config: Project to fetch tasks for
        timeout: Seconds before the provider is killed
        global_config: Supplies the providers dir for built-in names

    Returns:
        Parsed ProviderResult

    Raises:
        ProviderNotFound: Provider could not be resolved
        ProviderTimeout: Provider did not finish within timeout
        ProviderExecutionFailed: Provider failed to start or exited non-zero
        ResultParseError: stdout was not valid task JSON
    """
    providers_dir = global_config.providers_dir if global_config else ""
    script = resolve_provider(config.provider, config.project_dir, providers_dir)

    env = os.environ.copy()
    env.update(build_env_vars(config.args))

    logger.debug(f"Running provider {script} in {config.project_dir} (timeout {timeout:g}s)")
    started = time.monotonic()

    # Output is read as bytes; a provider printing invalid UTF-8 is a parse failure
    try:
        process = subprocess.Popen(
            provider_command(script),
            cwd=config.project_dir,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=env,
            start_new_session=True,
        )
    except OSError as e:
        raise ProviderExecutionFailed(message=f"failed to start provider {script}: {e}") from None

    try:
        stdout_bytes, stderr_bytes = process.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        _kill_process_group(process)
        try:
            _, stderr_bytes = process.communicate(timeout=KILL_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            stderr_bytes = b""
        logger.warning(f"Provider for {config.project_dir} timed out after {timeout:g}s")
        raise ProviderTimeout(
            message=f"provider timed out after {timeout:g}s",
            stderr=_decode_stderr(stderr_bytes),
            timeout=timeout,
        ) from None

    elapsed = time.monotonic() - started
    stderr = _decode_stderr(stderr_bytes)

    if process.returncode != 0:
        logger.warning(
            f"Provider for {config.project_dir} exited with code {process.returncode}: {stderr.strip()}"
        )
        raise ProviderExecutionFailed(
            message=f"provider exited with code {process.returncode}",
            stderr=stderr,
            exit_code=process.returncode,
        )

    try:
        result = parse_provider_output(stdout_bytes.decode("utf-8"))
    except UnicodeDecodeError as e:
        logger.warning(f"Provider for {config.project_dir} wrote non-UTF-8 output: {e}")
        raise ResultParseError(
            message=f"failed to parse provider output: stdout is not valid UTF-8 ({e.reason} at byte {e.start})",
            stderr=stderr,
        ) from None
    except ResultParseError as e:
        e.stderr = stderr
        logger.warning(f"Provider for {config.project_dir} returned invalid output: {e.message}")
        raise

    logger.debug(
        f"Provider for {config.project_dir} returned {len(result.all_tasks())} tasks in {elapsed:.2f}s"
    )
    return result

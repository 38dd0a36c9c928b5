"""
Task configuration loaders.

Per-project settings live in .agentdeck.yaml, found by walking up from a
working directory. Global defaults live in ~/.agentdeck/config.yaml
(AGENTDECK_CONFIG overrides the path). A missing global file means defaults.
"""

import logging
import os
import re
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Optional

import yaml

from agentdeck.lib import validate
from agentdeck.tasks.types import (
    GLOBAL_CONFIG_PATH,
    PROJECT_CONFIG_FILE,
    GlobalConfig,
    ProjectConfig,
)

logger = logging.getLogger(__name__)

GLOBAL_CONFIG_ENV = "AGENTDECK_CONFIG"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


class ConfigError(Exception):
    """Config file could not be read or is invalid."""


def parse_duration(value) -> Optional[float]:
    """
    Parse a duration into seconds.

    Accepts numbers (seconds) and strings like "500ms", "30s", "5m", "1m30s".
    Empty values return None.

    Raises:
        ConfigError: If the value is not a valid duration
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ConfigError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ConfigError(f"Invalid duration: {value!r}")
        return float(value)

    text = str(value).strip()
    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ConfigError(f"Invalid duration: {value!r}")
    return total


def _load_yaml(path: Path, schema_name: str) -> dict:
    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read {path}: {e}") from None

    if data is None:
        return {}

    try:
        validate.validate(data, schema_name)
    except validate.ValidationError as e:
        raise ConfigError(f"Invalid config {path}: {e}") from None
    return data


def load_project_config(path: Path) -> ProjectConfig:
    """Load a .agentdeck.yaml file. The project dir is the file's directory."""
    data = _load_yaml(path, "project_config")
    tasks = data.get("tasks") or {}
    return ProjectConfig(
        project_dir=str(path.parent.resolve()),
        provider=tasks.get("provider", ""),
        args={str(k): str(v) for k, v in (tasks.get("args") or {}).items()},
    )


def find_project_config(directory: str) -> Optional[ProjectConfig]:
    """Walk up from directory to find .agentdeck.yaml.

    Returns None if no config file is found (not an error).
    """
    current = Path(directory).expanduser().resolve()
    while True:
        candidate = current / PROJECT_CONFIG_FILE
        if candidate.is_file():
            return load_project_config(candidate)
        if current.parent == current:
            return None
        current = current.parent


def load_global_config(path: Optional[Path] = None, required: bool = False) -> GlobalConfig:
    """
    Load global config, returning defaults if the file doesn't exist.

    With required=True (an explicit --config path) a missing file is an
    error instead.

    Raises:
        ConfigError: If the file is invalid, or missing when required
    """
    if path is None:
        path = Path(os.path.expanduser(os.environ.get(GLOBAL_CONFIG_ENV, GLOBAL_CONFIG_PATH)))

    if not path.exists():
        if required:
            raise ConfigError(f"config file not found: {path}")
        return GlobalConfig()

    data = _load_yaml(path, "global_config")
    tasks = data.get("tasks") or {}
    return GlobalConfig(
        default_provider=tasks.get("default_provider", ""),
        interval=parse_duration(tasks.get("interval")),
        timeout=parse_duration(tasks.get("timeout")),
        providers_dir=tasks.get("providers_dir", ""),
        max_concurrency=tasks.get("max_concurrency"),
        status_map=dict(tasks.get("status_map") or {}),
        projects=list(data.get("projects") or []),
    )


def merge_config(project: ProjectConfig, global_config: Optional[GlobalConfig]) -> ProjectConfig:
    """Fill empty project fields from global defaults."""
    if global_config is None:
        return project
    if not project.provider and global_config.default_provider:
        project = replace(project, provider=global_config.default_provider)
    return project


def discover_projects(
    directories: Iterable[str],
    global_config: Optional[GlobalConfig] = None,
) -> list[ProjectConfig]:
    """
    Find project configs for a list of working directories.

    Directories inside the same project collapse to one config. Directories
    without a config, with an invalid config, or without any provider are
    skipped.
    """
    seen: set[str] = set()
    configs = []
    for directory in directories:
        if not directory:
            continue
        try:
            cfg = find_project_config(directory)
        except ConfigError as e:
            logger.warning(f"Skipping {directory}: {e}")
            continue
        if cfg is None:
            logger.debug(f"No {PROJECT_CONFIG_FILE} found for {directory}")
            continue
        if cfg.project_dir in seen:
            continue
        seen.add(cfg.project_dir)

        cfg = merge_config(cfg, global_config)
        if not cfg.provider:
            logger.debug(f"No provider configured for {cfg.project_dir}")
            continue
        configs.append(cfg)
    return configs


def find_project_for_dir(directory: str, configs: Iterable[ProjectConfig]) -> str:
    """Return the project dir containing directory, or "" if none."""
    if not directory:
        return ""
    for cfg in configs:
        if directory == cfg.project_dir or directory.startswith(cfg.project_dir.rstrip(os.sep) + os.sep):
            return cfg.project_dir
    return ""

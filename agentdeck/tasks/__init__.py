"""Task providers for agentdeck.

Runs user-configured provider programs per project, caches their outcomes,
and normalizes results into task groups for display.

Entry points:
- refresh_tasks(): concurrent, cached refresh of many projects
- execute_provider(): run a single provider
- discover_projects(): find project configs for working directories
"""

from agentdeck.tasks.cache import CachedResult, ResultCache
from agentdeck.tasks.config import (
    ConfigError,
    discover_projects,
    find_project_config,
    find_project_for_dir,
    load_global_config,
    merge_config,
    parse_duration,
)
from agentdeck.tasks.errors import (
    ProviderError,
    ProviderErrorType,
    ProviderExecutionFailed,
    ProviderNotFound,
    ProviderTimeout,
    ResultParseError,
)
from agentdeck.tasks.normalize import (
    aggregate_status,
    group_progress,
    normalize_groups,
    status_category,
)
from agentdeck.tasks.orchestrator import TaskSnapshot, dedupe_configs, refresh_tasks
from agentdeck.tasks.provider import execute_provider, resolve_provider
from agentdeck.tasks.types import (
    DEFAULT_PROVIDER_TIMEOUT,
    DEFAULT_REFRESH_INTERVAL,
    GlobalConfig,
    ProjectConfig,
    ProviderResult,
    Task,
    TaskGroup,
    parse_provider_output,
)

__all__ = [
    # cache
    "CachedResult",
    "ResultCache",
    # config
    "ConfigError",
    "discover_projects",
    "find_project_config",
    "find_project_for_dir",
    "load_global_config",
    "merge_config",
    "parse_duration",
    # errors
    "ProviderError",
    "ProviderErrorType",
    "ProviderExecutionFailed",
    "ProviderNotFound",
    "ProviderTimeout",
    "ResultParseError",
    # normalize
    "aggregate_status",
    "group_progress",
    "normalize_groups",
    "status_category",
    # orchestrator
    "TaskSnapshot",
    "dedupe_configs",
    "refresh_tasks",
    # provider
    "execute_provider",
    "resolve_provider",
    # types
    "DEFAULT_PROVIDER_TIMEOUT",
    "DEFAULT_REFRESH_INTERVAL",
    "GlobalConfig",
    "ProjectConfig",
    "ProviderResult",
    "Task",
    "TaskGroup",
    "parse_provider_output",
]

"""
Concurrent task refresh across projects.

refresh_tasks() is the single entry point used by the dashboard and the
one-shot CLI:

1. Deduplicate configs by project_dir (first seen wins).
2. Reuse cache entries younger than max_age.
3. Run providers for every miss concurrently, one worker per project.
4. Write each outcome through to the cache, then merge.

One project's failure never affects another: every unique project ends up
in exactly one of results_by_project / errors.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable, Optional

from agentdeck.tasks.cache import CachedResult, ResultCache
from agentdeck.tasks.errors import ProviderError, ProviderExecutionFailed
from agentdeck.tasks.normalize import normalize_groups
from agentdeck.tasks.provider import execute_provider
from agentdeck.tasks.types import (
    DEFAULT_REFRESH_INTERVAL,
    GlobalConfig,
    ProjectConfig,
    ProviderResult,
    TaskGroup,
)

logger = logging.getLogger(__name__)


@dataclass
class TaskSnapshot:
    """Consistent per-project view produced by one refresh."""
    results_by_project: dict[str, ProviderResult] = field(default_factory=dict)
    groups_by_project: dict[str, list[TaskGroup]] = field(default_factory=dict)
    errors: dict[str, ProviderError] = field(default_factory=dict)
    executed: list[str] = field(default_factory=list)  # Dirs whose provider ran this refresh

    @property
    def projects(self) -> set[str]:
        return set(self.results_by_project) | set(self.errors)


def dedupe_configs(configs: Iterable[ProjectConfig]) -> list[ProjectConfig]:
    """Collapse configs sharing a project_dir, keeping the first seen."""
    seen: set[str] = set()
    unique = []
    for cfg in configs:
        if cfg.project_dir in seen:
            continue
        seen.add(cfg.project_dir)
        unique.append(cfg)
    return unique


def _fetch(
    config: ProjectConfig,
    cache: ResultCache,
    global_config: Optional[GlobalConfig],
    timeout: float,
) -> CachedResult:
    """Run one provider and write the outcome through to the cache."""
    try:
        result = execute_provider(config, timeout, global_config)
    except ProviderError as e:
        return cache.set(config.project_dir, error=e)
    except Exception as e:
        # Keep the failure attributed to this project only
        logger.exception(f"Unexpected error running provider for {config.project_dir}")
        error = ProviderExecutionFailed(message=f"provider failed unexpectedly: {e}")
        return cache.set(config.project_dir, error=error)
    return cache.set(config.project_dir, result=result)


def _worker_count(misses: int, max_workers: Optional[int]) -> int:
    if max_workers is None:
        return misses
    return max(1, min(max_workers, misses))


def refresh_tasks(
    configs: Iterable[ProjectConfig],
    cache: ResultCache,
    global_config: Optional[GlobalConfig] = None,
    max_age: float = DEFAULT_REFRESH_INTERVAL,
    timeout: Optional[float] = None,
    max_workers: Optional[int] = None,
) -> TaskSnapshot:
    """
    Produce a fresh snapshot of task data for every configured project.

    Args:
        configs: Project configs, duplicates by project_dir allowed
        cache: Long-lived cache owned by the caller
        global_config: Defaults passed to providers and normalization
        max_age: Freshness window in seconds for reusing cache entries
        timeout: Per-provider timeout; defaults to the global timeout
        max_workers: Optional bound on concurrent providers; defaults to
            global_config.max_concurrency, else one worker per cache miss

    Returns:
        TaskSnapshot covering every unique project_dir exactly once
    """
    if timeout is None:
        timeout = global_config.provider_timeout if global_config else GlobalConfig().provider_timeout
    if max_workers is None and global_config is not None:
        max_workers = global_config.max_concurrency

    unique = dedupe_configs(configs)

    outcomes: dict[str, CachedResult] = {}
    misses: list[ProjectConfig] = []
    for cfg in unique:
        cached = cache.get(cfg.project_dir, max_age)
        if cached is None:
            misses.append(cfg)
        else:
            outcomes[cfg.project_dir] = cached

    if misses:
        workers = _worker_count(len(misses), max_workers)
        logger.debug(
            f"Refreshing {len(misses)} of {len(unique)} projects with {workers} workers "
            f"({len(unique) - len(misses)} cached)"
        )
        started = time.monotonic()
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="task-provider") as executor:
            future_map = {
                executor.submit(_fetch, cfg, cache, global_config, timeout): cfg
                for cfg in misses
            }
            for future in as_completed(future_map):
                cfg = future_map[future]
                outcomes[cfg.project_dir] = future.result()
        logger.debug(f"Provider fan-out finished in {time.monotonic() - started:.2f}s")

    snapshot = TaskSnapshot(executed=[cfg.project_dir for cfg in misses])
    for cfg in unique:
        entry = outcomes[cfg.project_dir]
        if entry.error is not None:
            snapshot.errors[cfg.project_dir] = entry.error
            continue
        snapshot.results_by_project[cfg.project_dir] = entry.result
        snapshot.groups_by_project[cfg.project_dir] = normalize_groups(entry.result, cfg, global_config)

    return snapshot

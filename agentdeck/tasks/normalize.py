"""
Normalization of provider results into task groups.

Providers that already group their tasks pass through; flat task lists are
wrapped in one group named after the project directory. Statuses are mapped
through the global status_map, and groups without a status get one derived
from their tasks.
"""

import os
from dataclasses import replace
from typing import Optional

from agentdeck.tasks.types import GlobalConfig, ProjectConfig, ProviderResult, Task, TaskGroup

CATEGORY_DONE = "done"
CATEGORY_ACTIVE = "active"
CATEGORY_REVIEW = "review"
CATEGORY_BLOCKED = "blocked"
CATEGORY_TODO = "todo"
CATEGORY_OTHER = "other"

# Keys are statuses lower-cased with spaces, "_" and "-" removed
_STATUS_CATEGORIES = {
    "done": CATEGORY_DONE,
    "closed": CATEGORY_DONE,
    "completed": CATEGORY_DONE,
    "complete": CATEGORY_DONE,
    "merged": CATEGORY_DONE,
    "resolved": CATEGORY_DONE,
    "active": CATEGORY_ACTIVE,
    "inprogress": CATEGORY_ACTIVE,
    "working": CATEGORY_ACTIVE,
    "started": CATEGORY_ACTIVE,
    "doing": CATEGORY_ACTIVE,
    "review": CATEGORY_REVIEW,
    "inreview": CATEGORY_REVIEW,
    "reviewing": CATEGORY_REVIEW,
    "blocked": CATEGORY_BLOCKED,
    "todo": CATEGORY_TODO,
    "open": CATEGORY_TODO,
    "new": CATEGORY_TODO,
    "proposed": CATEGORY_TODO,
    "agreed": CATEGORY_TODO,
    "backlog": CATEGORY_TODO,
    "": CATEGORY_TODO,
}

# Checked in order when a group mixes categories
_AGGREGATE_PRECEDENCE = (CATEGORY_ACTIVE, CATEGORY_REVIEW, CATEGORY_BLOCKED)


def status_category(status: str) -> str:
    """Map a free-text status to done/active/review/blocked/todo/other."""
    key = status.lower()
    for ch in (" ", "\t", "_", "-"):
        key = key.replace(ch, "")
    return _STATUS_CATEGORIES.get(key, CATEGORY_OTHER)


def normalize_status(status: str, status_map: Optional[dict[str, str]]) -> str:
    """Apply the configured status map. Unmapped statuses are returned unchanged."""
    if status_map and status in status_map:
        return status_map[status]
    return status


def aggregate_status(tasks: list[Task]) -> str:
    """
    Derive a group status from its tasks.

    Empty groups are todo; all-done groups are done; otherwise the first
    category present among active, review, blocked wins; a partly-done
    group with none of those is active; anything else is todo.
    """
    if not tasks:
        return CATEGORY_TODO

    categories = {status_category(t.status) for t in tasks}
    if categories == {CATEGORY_DONE}:
        return CATEGORY_DONE
    for category in _AGGREGATE_PRECEDENCE:
        if category in categories:
            return category
    if CATEGORY_DONE in categories:
        return CATEGORY_ACTIVE
    return CATEGORY_TODO


def group_progress(group: TaskGroup) -> tuple[int, int]:
    """Return (done, total) task counts for a group."""
    done = sum(1 for t in group.tasks if status_category(t.status) == CATEGORY_DONE)
    return done, len(group.tasks)


def _normalize_tasks(tasks: list[Task], status_map: dict[str, str]) -> list[Task]:
    return [replace(t, status=normalize_status(t.status, status_map)) for t in tasks]


def normalize_groups(
    result: ProviderResult,
    config: ProjectConfig,
    global_config: Optional[GlobalConfig] = None,
) -> list[TaskGroup]:
    """Turn a provider result into the group list shown for a project."""
    status_map = global_config.status_map if global_config else {}

    if result.groups:
        groups = []
        for g in result.groups:
            tasks = _normalize_tasks(g.tasks, status_map)
            status = normalize_status(g.status, status_map) if g.status else aggregate_status(tasks)
            is_current = g.is_current or (bool(result.current_group_id) and g.id == result.current_group_id)
            groups.append(replace(g, tasks=tasks, status=status, is_current=is_current))
        return groups

    if not result.tasks:
        return []

    tasks = _normalize_tasks(result.tasks, status_map)
    title = os.path.basename(config.project_dir.rstrip(os.sep)) or config.project_dir
    return [TaskGroup(
        id=config.project_dir,
        title=title,
        status=aggregate_status(tasks),
        tasks=tasks,
    )]

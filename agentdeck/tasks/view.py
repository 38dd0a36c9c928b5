"""
Sorting, filtering and summary helpers for displaying task groups.

All functions return new lists; the snapshot data is never mutated.
"""

from dataclasses import replace

from agentdeck.tasks.normalize import (
    CATEGORY_ACTIVE,
    CATEGORY_BLOCKED,
    CATEGORY_DONE,
    CATEGORY_REVIEW,
    CATEGORY_TODO,
    group_progress,
    status_category,
)
from agentdeck.tasks.types import Task, TaskGroup

SORT_SOURCE = "source"
SORT_STATUS = "status"
SORT_NAME = "name"
SORT_PROGRESS = "progress"
SORT_MODES = [SORT_SOURCE, SORT_STATUS, SORT_NAME, SORT_PROGRESS]

FILTER_ALL = "all"
FILTER_ACTIVE = "active"
FILTER_INCOMPLETE = "incomplete"
FILTER_MODES = [FILTER_ALL, FILTER_ACTIVE, FILTER_INCOMPLETE]

# Lower sorts first; unknown categories sort last
_STATUS_PRIORITY = {
    CATEGORY_ACTIVE: 0,
    CATEGORY_REVIEW: 1,
    CATEGORY_BLOCKED: 2,
    CATEGORY_TODO: 3,
    CATEGORY_DONE: 4,
}

# Display order for the summary line
SUMMARY_ORDER = [CATEGORY_DONE, CATEGORY_ACTIVE, CATEGORY_REVIEW, CATEGORY_BLOCKED, CATEGORY_TODO]

SUMMARY_COLORS = {
    CATEGORY_DONE: "green",
    CATEGORY_ACTIVE: "cyan",
    CATEGORY_REVIEW: "magenta",
    CATEGORY_BLOCKED: "red",
    CATEGORY_TODO: "white",
}


def _next_in_cycle(modes: list[str], current: str) -> str:
    if current in modes:
        return modes[(modes.index(current) + 1) % len(modes)]
    return modes[0]


def next_sort_mode(current: str) -> str:
    return _next_in_cycle(SORT_MODES, current)


def next_filter_mode(current: str) -> str:
    return _next_in_cycle(FILTER_MODES, current)


def status_priority(status: str) -> int:
    return _STATUS_PRIORITY.get(status_category(status), 5)


def filter_task_groups(groups: list[TaskGroup], mode: str) -> list[TaskGroup]:
    """Keep groups matching the filter mode."""
    if mode in (FILTER_ALL, ""):
        return list(groups)
    if mode == FILTER_ACTIVE:
        keep = {CATEGORY_ACTIVE, CATEGORY_REVIEW, CATEGORY_BLOCKED}
        return [g for g in groups if status_category(g.status) in keep]
    if mode == FILTER_INCOMPLETE:
        return [g for g in groups if status_category(g.status) != CATEGORY_DONE]
    raise ValueError(f"Unknown filter mode: {mode}")


def _completion(group: TaskGroup) -> float:
    done, total = group_progress(group)
    return done / total if total else 0.0


def sort_task_groups(groups: list[TaskGroup], mode: str) -> list[TaskGroup]:
    """Sort groups by mode. Source order breaks ties (sorted() is stable)."""
    if mode in (SORT_SOURCE, ""):
        return list(groups)
    if mode == SORT_STATUS:
        return sorted(groups, key=lambda g: status_priority(g.status))
    if mode == SORT_NAME:
        return sorted(groups, key=lambda g: g.title.lower())
    if mode == SORT_PROGRESS:
        # Lowest completion first
        return sorted(groups, key=_completion)
    raise ValueError(f"Unknown sort mode: {mode}")


def sort_tasks_by_status(tasks: list[Task]) -> list[Task]:
    return sorted(tasks, key=lambda t: status_priority(t.status))


def arrange_task_groups(
    groups: list[TaskGroup],
    sort_mode: str = SORT_SOURCE,
    filter_mode: str = FILTER_ALL,
    reverse: bool = False,
) -> list[TaskGroup]:
    """Filter, sort and optionally reverse groups for display.

    When sorting by status, tasks inside each group are sorted too.
    """
    arranged = sort_task_groups(filter_task_groups(groups, filter_mode), sort_mode)
    if sort_mode == SORT_STATUS:
        arranged = [replace(g, tasks=sort_tasks_by_status(g.tasks)) for g in arranged]
    if reverse:
        arranged.reverse()
    return arranged


def group_status_summary(groups: list[TaskGroup]) -> dict[str, int]:
    """Count groups per status category."""
    counts: dict[str, int] = {}
    for g in groups:
        category = status_category(g.status)
        counts[category] = counts.get(category, 0) + 1
    return counts


def task_status_summary(tasks: list[Task]) -> dict[str, int]:
    """Count tasks per status category."""
    counts: dict[str, int] = {}
    for t in tasks:
        category = status_category(t.status)
        counts[category] = counts.get(category, 0) + 1
    return counts


def render_status_summary(counts: dict[str, int]) -> str:
    """Render non-zero counts as Rich markup, e.g. "[green]12 done[/green]"."""
    parts = []
    for category in SUMMARY_ORDER:
        count = counts.get(category, 0)
        if count:
            color = SUMMARY_COLORS[category]
            parts.append(f"[{color}]{count} {category}[/{color}]")
    return "  ".join(parts)


def render_progress_bar(done: int, total: int, width: int = 4) -> str:
    """Render a fixed-width bar like "██░░"."""
    if total <= 0 or width <= 0:
        return "░" * max(width, 0)
    filled = min(width, round(done * width / total))
    return "█" * filled + "░" * (width - filled)

#!/usr/bin/env python3
"""
markdown-tasks provider.

Reads a delivery docs tree from the project and prints grouped task JSON:

    docs/delivery/backlog.md      | ID | Actor | User Story | Status | CoS |
    docs/delivery/<id>/tasks.md   | Task ID | Name | Status | Description |
    docs/delivery/<id>/prd.md     first line "# PBI-<id>: <title>"

Each backlog item becomes a group with id "PBI-<id>". The current group is
the first InProgress item, else the first Agreed one.

Environment:
    AGENTDECK_TASK_ARG_PATH           Delivery docs dir (default: docs/delivery)
    AGENTDECK_TASK_ARG_STATUS_FILTER  Comma-separated backlog statuses to keep
"""

import json
import os
import re
import sys
from pathlib import Path
from typing import Optional

DEFAULT_PATH = "docs/delivery"
PATH_ENV = "AGENTDECK_TASK_ARG_PATH"
STATUS_FILTER_ENV = "AGENTDECK_TASK_ARG_STATUS_FILTER"

_SEPARATOR_ROW = re.compile(r"-{3,}")
_LINK = re.compile(r"^\[([^\]]*)\]\(.*\)$")


class DeliveryDocsError(Exception):
    """Delivery docs are missing or malformed."""


def _status_key(status: str) -> str:
    return re.sub(r"[\s_-]", "", status.lower())


def parse_table(lines: list[str], headers: tuple[str, ...]) -> Optional[list[list[str]]]:
    """Return the cell rows of the first table whose header row names all headers.

    Returns None when no such table exists.
    """
    rows = []
    in_table = False
    for line in lines:
        if not line.lstrip().startswith("|"):
            if in_table:
                break
            continue
        if _SEPARATOR_ROW.search(line):
            continue
        if not in_table:
            in_table = all(h in line for h in headers)
            continue
        rows.append([cell.strip() for cell in line.strip().strip("|").split("|")])
    return rows if in_table else None


def load_backlog(path: Path, status_filter: set[str]) -> list[tuple[str, str, str]]:
    """Read (id, title, status) for each backlog item, in file order."""
    backlog_file = path / "backlog.md"
    if not backlog_file.is_file():
        raise DeliveryDocsError(f"backlog file not found: {backlog_file}")

    rows = parse_table(backlog_file.read_text().splitlines(), ("ID", "User Story", "Status"))
    if rows is None:
        raise DeliveryDocsError(
            f"no backlog table found in {backlog_file} (expected ID, User Story and Status columns)"
        )

    items = []
    for cells in rows:
        if len(cells) < 4 or not cells[0]:
            continue
        item_id, title, status = cells[0], cells[2], cells[3]
        if status_filter and status.lower() not in status_filter:
            continue
        items.append((item_id, title, status))
    return items


def load_tasks(path: Path, item_id: str) -> list[dict]:
    tasks_file = path / item_id / "tasks.md"
    if not tasks_file.is_file():
        return []

    rows = parse_table(tasks_file.read_text().splitlines(), ("Task ID", "Status")) or []
    tasks = []
    for cells in rows:
        if len(cells) < 3 or not cells[0]:
            continue
        name = cells[1]
        match = _LINK.match(name)
        tasks.append({
            "id": cells[0],
            "title": match.group(1) if match else name,
            "status": cells[2],
        })
    return tasks


def group_title(path: Path, item_id: str, fallback: str) -> str:
    """Title from the first line of prd.md, without the "# PBI-<id>: " prefix."""
    prd_file = path / item_id / "prd.md"
    if not prd_file.is_file():
        return fallback
    lines = prd_file.read_text().splitlines()
    if not lines:
        return fallback
    title = lines[0].removeprefix("# ")
    return title.removeprefix(f"PBI-{item_id}: ")


def current_item(items: list[tuple[str, str, str]]) -> str:
    for wanted in ("inprogress", "agreed"):
        for item_id, _, status in items:
            if _status_key(status) == wanted:
                return item_id
    return ""


def build_output(path: Path, status_filter: Optional[set[str]] = None) -> dict:
    """Build provider JSON for a delivery docs directory.

    Raises:
        DeliveryDocsError: If the directory or its backlog is missing
    """
    if not path.is_dir():
        raise DeliveryDocsError(f"directory not found: {path}")

    items = load_backlog(path, status_filter or set())
    current = current_item(items)

    output: dict = {"groups": []}
    for item_id, title, status in items:
        group = {
            "id": f"PBI-{item_id}",
            "title": group_title(path, item_id, title),
            "status": status,
            "tasks": load_tasks(path, item_id),
        }
        if item_id == current:
            group["is_current"] = True
            output["current_group_id"] = group["id"]
            output["current_group_title"] = group["title"]
        output["groups"].append(group)
    return output


def main() -> int:
    path = Path(os.environ.get(PATH_ENV) or DEFAULT_PATH)
    raw_filter = os.environ.get(STATUS_FILTER_ENV, "")
    status_filter = {s.strip().lower() for s in raw_filter.split(",") if s.strip()}

    try:
        output = build_output(path, status_filter)
    except (DeliveryDocsError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(output))
    return 0


if __name__ == "__main__":
    sys.exit(main())

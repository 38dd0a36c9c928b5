"""agentdeck tasks - refresh every project once and print the result."""

import json
import os
from dataclasses import asdict
from pathlib import Path

from agentdeck.tasks import (
    ConfigError,
    ResultCache,
    TaskSnapshot,
    discover_projects,
    group_progress,
    load_global_config,
    refresh_tasks,
)


def snapshot_to_dict(snapshot: TaskSnapshot) -> dict:
    """JSON-friendly view of a snapshot, keyed by project dir."""
    projects = {}
    for project_dir in sorted(snapshot.projects):
        error = snapshot.errors.get(project_dir)
        if error is not None:
            projects[project_dir] = {
                "error": {
                    "kind": error.kind.value,
                    "message": error.message,
                    "stderr": error.stderr,
                },
            }
            continue
        result = snapshot.results_by_project[project_dir]
        projects[project_dir] = {
            "task_count": len(result.all_tasks()),
            "groups": [asdict(g) for g in snapshot.groups_by_project[project_dir]],
        }
    return {"projects": projects}


def print_snapshot(snapshot: TaskSnapshot) -> None:
    for project_dir in sorted(snapshot.projects):
        print(f"{project_dir}")
        error = snapshot.errors.get(project_dir)
        if error is not None:
            print(f"  ERROR ({error.kind.value}): {error}")
            continue

        groups = snapshot.groups_by_project[project_dir]
        if not groups:
            print("  (no tasks)")
        for group in groups:
            done, total = group_progress(group)
            print(f"  [{group.status}] {group.title} ({done}/{total})")
            for t in group.tasks:
                print(f"    - {t.id}: {t.title} [{t.status}]")


def cmd_tasks(args) -> int:
    """Refresh task providers once.

    Returns 0 if every provider succeeded, 1 if any failed, 2 on config errors.
    """
    try:
        if args.config:
            global_config = load_global_config(Path(args.config), required=True)
        else:
            global_config = load_global_config()
    except ConfigError as e:
        print(f"ERROR: {e}")
        return 2

    directories = args.dirs or global_config.projects or [os.getcwd()]
    configs = discover_projects(directories, global_config)
    if not configs:
        print("ERROR: No projects with a task provider found. Add .agentdeck.yaml to a project.")
        return 2

    snapshot = refresh_tasks(
        configs,
        ResultCache(),
        global_config,
        timeout=args.timeout,
        max_workers=args.max_workers,
    )

    if args.json:
        print(json.dumps(snapshot_to_dict(snapshot), indent=2))
    else:
        print_snapshot(snapshot)

    return 1 if snapshot.errors else 0

#!/usr/bin/env python3
"""
github-issues provider.

Lists a repository's issues with the gh CLI and prints them as task JSON,
one group per milestone. Issues without a milestone go into "Ungrouped".

Environment:
    AGENTDECK_TASK_ARG_REPO   owner/repo (default: detected by gh from cwd)
    AGENTDECK_TASK_ARG_LIMIT  Max issues to fetch (default: 100)
"""

import json
import os
import re
import shutil
import subprocess
import sys

REPO_ENV = "AGENTDECK_TASK_ARG_REPO"
LIMIT_ENV = "AGENTDECK_TASK_ARG_LIMIT"
DEFAULT_LIMIT = 100
GH_TIMEOUT = 60
ISSUE_FIELDS = "number,title,state,labels,assignees,milestone,url,createdAt,updatedAt"
UNGROUPED_ID = "ungrouped"


class GitHubError(Exception):
    """gh failed or returned unusable data."""


def _gh(*args: str) -> str:
    try:
        result = subprocess.run(
            ["gh", *args],
            capture_output=True,
            text=True,
            timeout=GH_TIMEOUT,
        )
    except subprocess.TimeoutExpired:
        raise GitHubError(f"gh {args[0]} timed out after {GH_TIMEOUT}s") from None
    if result.returncode != 0:
        raise GitHubError(result.stderr.strip() or f"gh {args[0]} exited with code {result.returncode}")
    return result.stdout


def detect_repo() -> str:
    try:
        return _gh("repo", "view", "--json", "nameWithOwner", "-q", ".nameWithOwner").strip()
    except GitHubError:
        raise GitHubError(
            f"could not detect the repository; set {REPO_ENV} or run inside a GitHub checkout"
        ) from None


def fetch_issues(repo: str, limit: int) -> list[dict]:
    output = _gh("issue", "list", "--repo", repo, "--json", ISSUE_FIELDS, "--limit", str(limit))
    try:
        return json.loads(output)
    except json.JSONDecodeError as e:
        raise GitHubError(f"gh returned invalid JSON: {e}") from None


def issue_to_task(issue: dict) -> dict:
    state = (issue.get("state") or "").upper()
    task = {
        "id": f"#{issue['number']}",
        "title": issue.get("title", ""),
        "status": {"OPEN": "open", "CLOSED": "closed"}.get(state, state.lower()),
        "labels": [label["name"] for label in issue.get("labels") or []],
        "priority": 0,
    }
    assignees = issue.get("assignees") or []
    if assignees:
        task["assignee"] = assignees[0]["login"]
    for key, source in (("url", "url"), ("created", "createdAt"), ("updated", "updatedAt")):
        if issue.get(source):
            task[key] = issue[source]
    return task


def _slug(title: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "-", title).lower()


def issues_to_groups(issues: list[dict]) -> list[dict]:
    """Group issues by milestone title (sorted), with unmilestoned issues last."""
    milestones: dict[str, dict] = {}
    ungrouped = []
    for issue in issues:
        milestone = issue.get("milestone") or {}
        title = milestone.get("title")
        if not title:
            ungrouped.append(issue_to_task(issue))
            continue
        if title not in milestones:
            group = {
                "id": _slug(title),
                "title": title,
                "status": "closed" if (milestone.get("state") or "").lower() == "closed" else "open",
                "tasks": [],
            }
            if milestone.get("url"):
                group["url"] = milestone["url"]
            milestones[title] = group
        milestones[title]["tasks"].append(issue_to_task(issue))

    groups = [milestones[title] for title in sorted(milestones)]
    if ungrouped:
        groups.append({"id": UNGROUPED_ID, "title": "Ungrouped", "status": "open", "tasks": ungrouped})
    return groups


def main() -> int:
    if shutil.which("gh") is None:
        print("error: 'gh' CLI is not installed (https://cli.github.com/)", file=sys.stderr)
        return 1

    try:
        limit = int(os.environ.get(LIMIT_ENV) or DEFAULT_LIMIT)
    except ValueError:
        print(f"error: {LIMIT_ENV} must be an integer", file=sys.stderr)
        return 1

    try:
        repo = os.environ.get(REPO_ENV) or detect_repo()
        issues = fetch_issues(repo, limit)
    except GitHubError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(json.dumps({"groups": issues_to_groups(issues)}))
    return 0


if __name__ == "__main__":
    sys.exit(main())

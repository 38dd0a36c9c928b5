"""
Task data model.

Providers report tasks either flat ({"tasks": [...]}) or grouped
({"groups": [...]}). Both shapes parse into ProviderResult.
"""

from dataclasses import dataclass, field
from typing import Optional

from agentdeck.lib.validate import ValidationError, validate_json
from agentdeck.tasks.errors import ResultParseError

# Default refresh interval / freshness window (seconds)
DEFAULT_REFRESH_INTERVAL = 60.0

# Default per-execution provider timeout (seconds)
DEFAULT_PROVIDER_TIMEOUT = 30.0

# Per-project config filename, searched upward from a directory
PROJECT_CONFIG_FILE = ".agentdeck.yaml"

# Global config location (AGENTDECK_CONFIG overrides)
GLOBAL_CONFIG_PATH = "~/.agentdeck/config.yaml"

PROVIDER_SCHEMA = "provider_result"


@dataclass
class Task:
    """A single task item from a provider."""
    id: str  # Unique within one provider's output only
    title: str
    status: str  # Free text, see normalize.status_category
    assignee: str = ""
    labels: list[str] = field(default_factory=list)
    priority: int = 0
    url: str = ""
    created: str = ""
    updated: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        return cls(
            id=data["id"],
            title=data["title"],
            status=data["status"],
            assignee=data.get("assignee", ""),
            labels=list(data.get("labels", [])),
            priority=data.get("priority", 0),
            url=data.get("url", ""),
            created=data.get("created", ""),
            updated=data.get("updated", ""),
        )


@dataclass
class TaskGroup:
    """A group of related tasks (epic, milestone, PBI)."""
    id: str
    title: str
    status: str = ""  # Aggregate status; derived from tasks when empty
    tasks: list[Task] = field(default_factory=list)
    url: str = ""
    is_current: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "TaskGroup":
        return cls(
            id=data["id"],
            title=data["title"],
            status=data.get("status", ""),
            tasks=[Task.from_dict(t) for t in data.get("tasks", [])],
            url=data.get("url", ""),
            is_current=data.get("is_current", False),
        )


@dataclass
class ProviderResult:
    """Parsed provider output."""
    tasks: list[Task] = field(default_factory=list)
    groups: list[TaskGroup] = field(default_factory=list)
    current_group_id: str = ""
    current_group_title: str = ""

    def all_tasks(self) -> list[Task]:
        """All tasks, flattening groups if present."""
        if self.groups:
            return [t for g in self.groups for t in g.tasks]
        return list(self.tasks)


@dataclass
class ProjectConfig:
    """Task settings for one project directory."""
    project_dir: str  # Absolute path, identity key
    provider: str  # Executable path or built-in provider name
    args: dict[str, str] = field(default_factory=dict)


@dataclass
class GlobalConfig:
    """Process-wide task defaults from the global config file."""
    default_provider: str = ""
    interval: Optional[float] = None
    timeout: Optional[float] = None
    providers_dir: str = ""
    max_concurrency: Optional[int] = None  # None means one worker per project
    status_map: dict[str, str] = field(default_factory=dict)
    projects: list[str] = field(default_factory=list)

    @property
    def refresh_interval(self) -> float:
        return self.interval if self.interval else DEFAULT_REFRESH_INTERVAL

    @property
    def provider_timeout(self) -> float:
        return self.timeout if self.timeout else DEFAULT_PROVIDER_TIMEOUT


def parse_provider_output(text: str) -> ProviderResult:
    """
    Parse provider stdout into a ProviderResult.

    Raises:
        ResultParseError: If text is not JSON or violates the provider schema
    """
    try:
        data = validate_json(text, PROVIDER_SCHEMA)
    except ValidationError as e:
        raise ResultParseError(message=f"failed to parse provider output: {e}") from None

    # Older providers name the current group current_pbi_*
    return ProviderResult(
        tasks=[Task.from_dict(t) for t in data.get("tasks", [])],
        groups=[TaskGroup.from_dict(g) for g in data.get("groups", [])],
        current_group_id=data.get("current_group_id") or data.get("current_pbi_id", ""),
        current_group_title=data.get("current_group_title") or data.get("current_pbi_title", ""),
    )

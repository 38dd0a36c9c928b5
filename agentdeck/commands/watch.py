"""
agentdeck watch - task dashboard for configured projects.

Interactive TUI listing each project with its task summary and showing the
task groups of the focused project. Provider refreshes run in a worker
thread and come back as a TasksRefreshed message, so the UI never blocks
on a slow provider.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from rich.markup import escape
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.message import Message
from textual.reactive import reactive
from textual.widgets import Footer, Header, Static
from textual.worker import Worker, WorkerState

from agentdeck.lib.tui import ContentScreen, RefreshAllModal
from agentdeck.tasks import (
    ConfigError,
    GlobalConfig,
    ProjectConfig,
    ProviderError,
    ResultCache,
    TaskGroup,
    TaskSnapshot,
    discover_projects,
    find_project_for_dir,
    group_progress,
    load_global_config,
    refresh_tasks,
    status_category,
)
from agentdeck.tasks.view import (
    FILTER_ALL,
    SORT_SOURCE,
    SUMMARY_COLORS,
    arrange_task_groups,
    group_status_summary,
    next_filter_mode,
    next_sort_mode,
    render_progress_bar,
    render_status_summary,
    task_status_summary,
)

logger = logging.getLogger(__name__)

# Configuration
PROGRESS_BAR_WIDTH = 10
REFRESH_WORKER_GROUP = "task-refresh"
POLL_MAX_AGE_RATIO = 0.5


def project_label(project_dir: str) -> str:
    """Short display name for a project directory."""
    return os.path.basename(project_dir.rstrip(os.sep)) or project_dir


def merge_groups(
    previous: dict[str, list[TaskGroup]],
    snapshot: TaskSnapshot,
) -> dict[str, list[TaskGroup]]:
    """Combine a new snapshot with groups already on screen.

    Projects that errored keep their last successful groups until a later
    success replaces them. Projects missing from the snapshot are dropped.
    """
    merged = {}
    for project_dir in snapshot.projects:
        if project_dir in snapshot.groups_by_project:
            merged[project_dir] = snapshot.groups_by_project[project_dir]
        elif project_dir in previous:
            merged[project_dir] = previous[project_dir]
    return merged


def format_project_line(
    project_dir: str,
    groups: Optional[list[TaskGroup]],
    error: Optional[ProviderError],
    focused: bool = False,
) -> str:
    """Format one row of the project list with Rich markup."""
    marker = "[bold]>[/bold]" if focused else " "
    name = f"[bold]{escape(project_label(project_dir))}[/bold]" if focused else escape(project_label(project_dir))

    if error is not None:
        stale = " [dim](stale)[/dim]" if groups else ""
        return f"{marker} {name}  [red]error: {escape(error.message)}[/red]{stale}"
    if groups is None:
        return f"{marker} {name}  [dim]loading...[/dim]"
    if not groups:
        return f"{marker} {name}  [dim]no tasks[/dim]"
    return f"{marker} {name}  {render_status_summary(group_status_summary(groups))}"


def format_group_lines(group: TaskGroup) -> list[str]:
    """Format a task group and its tasks with Rich markup."""
    done, total = group_progress(group)
    category = status_category(group.status)
    color = SUMMARY_COLORS.get(category, "white")
    current = " [yellow]*[/yellow]" if group.is_current else ""

    lines = [
        f"{render_progress_bar(done, total, PROGRESS_BAR_WIDTH)} {done}/{total} "
        f"[{color}]{escape(group.status or category)}[/{color}] "
        f"[bold]{escape(group.title)}[/bold]{current}"
    ]
    for t in group.tasks:
        task_color = SUMMARY_COLORS.get(status_category(t.status), "white")
        lines.append(
            f"    [{task_color}]•[/{task_color}] [dim]{escape(t.id)}[/dim] "
            f"{escape(t.title)} [dim]({escape(t.status)})[/dim]"
        )
    return lines


class TasksRefreshed(Message):
    """Posted from the refresh worker when a snapshot is ready."""

    def __init__(self, snapshot: TaskSnapshot) -> None:
        super().__init__()
        self.snapshot = snapshot


class ProjectListWidget(Static):
    """Lists projects with their status summary or error."""

    lines: reactive[list] = reactive(list, always_update=True)

    def render(self) -> str:
        if not self.lines:
            return "[dim]No projects configured[/dim]"
        return "\n".join(self.lines)


class TaskPanelWidget(Static):
    """Shows task groups for the focused project."""

    lines: reactive[list] = reactive(list, always_update=True)

    def render(self) -> str:
        if not self.lines:
            return "[dim]No tasks[/dim]"
        return "\n".join(self.lines)


class WatchApp(App):
    """Task dashboard application."""

    CSS = """
    #main-container {
        layout: vertical;
        padding: 1;
    }

    #projects-box {
        border: solid green;
        padding: 0 1;
        height: auto;
        max-height: 40%;
        margin-bottom: 1;
    }

    #tasks-box {
        border: solid blue;
        padding: 0 1;
        height: 1fr;
        overflow-y: auto;
    }

    #action-bar {
        dock: bottom;
        height: 1;
        background: $surface;
        padding: 0 1;
    }

    ProjectListWidget {
        height: auto;
    }

    TaskPanelWidget {
        height: auto;
    }
    """

    BINDINGS = [
        Binding("j", "next_project", "Next", show=False),
        Binding("down", "next_project", "Next", show=False),
        Binding("k", "prev_project", "Prev", show=False),
        Binding("up", "prev_project", "Prev", show=False),
        Binding("r", "refresh_project", "Refresh", show=False),
        Binding("R", "refresh_all", "Refresh all", show=False),
        Binding("s", "cycle_sort", "Sort", show=False),
        Binding("S", "reverse_sort", "Reverse", show=False),
        Binding("f", "cycle_filter", "Filter", show=False),
        Binding("e", "show_error", "Error", show=False),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        configs: list[ProjectConfig],
        global_config: GlobalConfig,
        cache: Optional[ResultCache] = None,
        timeout: Optional[float] = None,
        focus: str = "",
    ) -> None:
        super().__init__()
        self.configs = configs
        self.global_config = global_config
        self.cache = cache if cache is not None else ResultCache()
        self.timeout = timeout
        self.interval = global_config.refresh_interval
        self.groups_by_project: dict[str, list[TaskGroup]] = {}
        self.errors: dict[str, ProviderError] = {}
        self.cursor = next((i for i, cfg in enumerate(configs) if cfg.project_dir == focus), 0)
        self.sort_mode = SORT_SOURCE
        self.sort_reversed = False
        self.filter_mode = FILTER_ALL
        self.refreshing = False

    def compose(self) -> ComposeResult:
        yield Header()
        yield Container(
            Container(ProjectListWidget(id="projects"), id="projects-box"),
            Container(TaskPanelWidget(id="tasks"), id="tasks-box"),
            id="main-container",
        )
        yield Static(id="action-bar")
        yield Footer()

    def on_mount(self) -> None:
        self.title = "agentdeck"
        self.update_view()
        self.start_refresh()
        self.set_interval(self.interval, self.poll_tasks)

    @property
    def focused_project(self) -> str:
        if not self.configs:
            return ""
        return self.configs[self.cursor].project_dir

    @property
    def poll_max_age(self) -> float:
        """Freshness window for unattended polls.

        Entries are stamped when their provider finishes, so the window must
        be shorter than the poll interval for every tick to re-run providers.
        """
        return self.interval * POLL_MAX_AGE_RATIO

    def poll_tasks(self) -> None:
        """Periodic refresh; skipped while one is already running."""
        if self.refreshing:
            logger.debug("Skipping task poll, refresh already in flight")
            return
        self.start_refresh(max_age=self.poll_max_age)

    def start_refresh(self, max_age: Optional[float] = None) -> None:
        if not self.configs:
            return
        self.refreshing = True
        self.update_view()
        self.run_refresh(list(self.configs), self.interval if max_age is None else max_age)

    def refresh_snapshot(self, configs: list[ProjectConfig], max_age: float) -> TaskSnapshot:
        return refresh_tasks(
            configs,
            self.cache,
            self.global_config,
            max_age=max_age,
            timeout=self.timeout,
        )

    @work(thread=True, group=REFRESH_WORKER_GROUP, exit_on_error=False)
    def run_refresh(self, configs: list[ProjectConfig], max_age: float) -> None:
        self.post_message(TasksRefreshed(self.refresh_snapshot(configs, max_age)))

    def on_tasks_refreshed(self, message: TasksRefreshed) -> None:
        snapshot = message.snapshot
        self.groups_by_project = merge_groups(self.groups_by_project, snapshot)
        self.errors = dict(snapshot.errors)
        self.refreshing = False
        if snapshot.errors:
            logger.info(f"Task refresh finished with {len(snapshot.errors)} provider errors")
        self.update_view()

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.worker.group != REFRESH_WORKER_GROUP or event.state != WorkerState.ERROR:
            return
        logger.error(f"Task refresh failed: {event.worker.error}")
        self.refreshing = False
        self.notify(f"Task refresh failed: {event.worker.error}", severity="error")
        self.update_view()

    def update_view(self) -> None:
        """Push current state into the widgets."""
        project_lines = [
            format_project_line(
                cfg.project_dir,
                self.groups_by_project.get(cfg.project_dir),
                self.errors.get(cfg.project_dir),
                focused=(i == self.cursor),
            )
            for i, cfg in enumerate(self.configs)
        ]
        self.query_one("#projects", ProjectListWidget).lines = project_lines
        self.query_one("#tasks", TaskPanelWidget).lines = self._task_panel_lines()
        self.query_one("#action-bar", Static).update(self._get_action_bar())
        self.sub_title = self.focused_project

    def _task_panel_lines(self) -> list[str]:
        project = self.focused_project
        if not project:
            return []

        header = f"[bold]Tasks: {escape(project_label(project))}[/bold]"
        header += f"  [dim]sort: {self.sort_mode}{' (rev)' if self.sort_reversed else ''}"
        header += f"  filter: {self.filter_mode}[/dim]"
        if self.refreshing:
            header += "  [yellow]Refreshing...[/yellow]"
        lines = [header]

        error = self.errors.get(project)
        if error is not None:
            lines.append(f"[red]{escape(str(error))}[/red]")

        all_groups = self.groups_by_project.get(project, [])
        summary = render_status_summary(task_status_summary([t for g in all_groups for t in g.tasks]))
        if summary:
            lines.append(summary)

        groups = arrange_task_groups(
            all_groups,
            sort_mode=self.sort_mode,
            filter_mode=self.filter_mode,
            reverse=self.sort_reversed,
        )
        for group in groups:
            lines.extend(format_group_lines(group))
        return lines

    def _get_action_bar(self) -> str:
        actions = ["[j/k] project", "[r]efresh", "[R]efresh all", "[s]ort", "[f]ilter"]
        if self.focused_project in self.errors:
            actions.append("[e]rror")
        actions.append("[q]uit")
        return " | ".join(actions)

    def action_next_project(self) -> None:
        if self.configs:
            self.cursor = (self.cursor + 1) % len(self.configs)
            self.update_view()

    def action_prev_project(self) -> None:
        if self.configs:
            self.cursor = (self.cursor - 1) % len(self.configs)
            self.update_view()

    def action_refresh_project(self) -> None:
        """Re-run the focused project's provider."""
        if self.refreshing:
            self.notify("Refresh already in progress", severity="warning")
            return
        if self.focused_project:
            self.cache.invalidate(self.focused_project)
        self.start_refresh()

    def action_refresh_all(self) -> None:
        """Re-run every provider after confirmation."""
        if self.refreshing:
            self.notify("Refresh already in progress", severity="warning")
            return

        def handle_confirm(confirmed: bool) -> None:
            if not confirmed:
                return
            self.cache.invalidate_all()
            self.start_refresh()

        names = [project_label(cfg.project_dir) for cfg in self.configs]
        self.push_screen(RefreshAllModal(names), handle_confirm)

    def action_cycle_sort(self) -> None:
        self.sort_mode = next_sort_mode(self.sort_mode)
        self.update_view()

    def action_reverse_sort(self) -> None:
        self.sort_reversed = not self.sort_reversed
        self.update_view()

    def action_cycle_filter(self) -> None:
        self.filter_mode = next_filter_mode(self.filter_mode)
        self.update_view()

    def action_show_error(self) -> None:
        """Show full provider error, including stderr."""
        error = self.errors.get(self.focused_project)
        if error is None:
            self.notify("No error for this project", severity="warning")
            return

        content = f"{error.kind.value}: {error.message}\n"
        if error.stderr.strip():
            content += f"\nstderr:\n{error.stderr}"
        self.push_screen(ContentScreen(content, title=f"Provider error: {project_label(self.focused_project)}"))


def cmd_watch(args) -> int:
    """Run the task dashboard."""
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

    # Start focused on the project we were launched from
    focus = find_project_for_dir(str(Path.cwd().resolve()), configs)
    app = WatchApp(configs, global_config, timeout=args.timeout, focus=focus)
    app.run()
    return 0

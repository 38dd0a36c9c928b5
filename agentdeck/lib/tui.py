"""Shared TUI components for agentdeck commands."""

from rich.markup import escape
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Static

# Project names listed in the refresh dialog before collapsing to "and N more"
MAX_LISTED_PROJECTS = 8


class RefreshAllModal(ModalScreen[bool]):
    """Asks before dropping every cached result and re-running all providers."""

    CSS = """
    RefreshAllModal {
        align: center middle;
    }

    #refresh-dialog {
        width: auto;
        max-width: 80%;
        height: auto;
        padding: 1 2;
        background: $surface;
        border: solid $warning;
    }

    #refresh-projects {
        margin: 1 0;
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("y", "confirm", "Re-run"),
        Binding("enter", "confirm", "Re-run", show=False),
        Binding("n", "cancel", "Cancel"),
        Binding("escape", "cancel", "Cancel"),
    ]

    def __init__(self, project_names: list[str]) -> None:
        super().__init__()
        self.project_names = project_names

    @property
    def question(self) -> str:
        count = len(self.project_names)
        noun = "project" if count == 1 else "projects"
        return f"Discard cached tasks and re-run providers for {count} {noun}?"

    def project_lines(self) -> list[str]:
        lines = [f"  {escape(name)}" for name in self.project_names[:MAX_LISTED_PROJECTS]]
        hidden = len(self.project_names) - MAX_LISTED_PROJECTS
        if hidden > 0:
            lines.append(f"  [dim]and {hidden} more[/dim]")
        return lines

    def compose(self) -> ComposeResult:
        yield Container(
            Static(f"[bold]{escape(self.question)}[/bold]", id="refresh-question"),
            Static("\n".join(self.project_lines()), id="refresh-projects"),
            Static(escape("[y] re-run  [n] cancel"), id="refresh-hint"),
            id="refresh-dialog",
        )

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)


class ContentScreen(ModalScreen):
    """Full screen content viewer (provider errors, stderr)."""

    CSS = """
    #content-scroll {
        height: 1fr;
    }

    #content-body {
        padding: 1;
    }
    """

    BINDINGS = [
        Binding("q", "back", "Back"),
        Binding("escape", "back", "Back"),
    ]

    def __init__(self, content: str, title: str = "") -> None:
        super().__init__()
        self.content = content
        self.screen_title = title

    def compose(self) -> ComposeResult:
        yield Header()
        yield VerticalScroll(
            Static(self.content, id="content-body", markup=False),
            id="content-scroll",
        )
        yield Footer()

    def on_mount(self) -> None:
        if self.screen_title:
            self.title = self.screen_title

    def action_back(self) -> None:
        self.app.pop_screen()

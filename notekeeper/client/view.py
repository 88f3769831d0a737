"""
Editor View.

The controller drives a surface through the EditorView protocol. ViewState
is a headless implementation that records what was last shown; tests and
one-shot commands use it in place of the TUI.
"""

from dataclasses import dataclass, field
from typing import Protocol

from notekeeper.client.models import Note


class EditorView(Protocol):
    """Surface the EditorStateController renders into."""

    def render_notes(self, notes: list[Note], selected_id: str | None) -> None: ...

    def show_editor(self, title: str, content: str) -> None: ...

    def show_welcome(self) -> None: ...

    def show_status(self, message: str, kind: str = "") -> None: ...


@dataclass
class ViewState:
    """Headless EditorView."""

    notes: list[Note] = field(default_factory=list)
    selected_id: str | None = None
    mode: str = "welcome"
    title: str = ""
    content: str = ""
    status: str = ""
    status_kind: str = ""
    history: list[tuple[str, str]] = field(default_factory=list)

    def render_notes(self, notes: list[Note], selected_id: str | None) -> None:
        self.notes = list(notes)
        self.selected_id = selected_id

    def show_editor(self, title: str, content: str) -> None:
        self.mode = "editor"
        self.title = title
        self.content = content

    def show_welcome(self) -> None:
        self.mode = "welcome"
        self.title = ""
        self.content = ""

    def show_status(self, message: str, kind: str = "") -> None:
        self.status = message
        self.status_kind = kind
        self.history.append((message, kind))

"""
Notekeeper TUI: terminal note editor.

Notes list on the left, title and content editor on the right, status bar
at the bottom. Edits auto-save after a short pause; pressing Enter twice
in quick succession sends the content through the text improvement
service.

Requires a running server (python cli.py --service server).

Usage:
    python tui.py
    python tui.py --debug
"""

from __future__ import annotations

import sys

import structlog
from rich.text import Text
from textual import events, on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.screen import ModalScreen
from textual.widgets import (
    Button,
    Footer,
    Header,
    Input,
    Label,
    ListItem,
    ListView,
    Static,
    TextArea,
)

from notekeeper.backend.core.config import get_app_config
from notekeeper.backend.core.logging import get_logger, log_with_source, setup_logging
from notekeeper.client.api import APIClient
from notekeeper.client.assist import build_assist_service
from notekeeper.client.controller import EditorStateController
from notekeeper.client.errors import ClientError
from notekeeper.client.formatting import format_relative_date, note_preview
from notekeeper.client.models import Note
from notekeeper.client.store import RemoteStoreClient

logger = get_logger(__name__)

STATUS_STYLES = {
    "loading": "yellow",
    "success": "green",
    "error": "bold red",
}

WELCOME_TEXT = (
    "[bold]Welcome to Notekeeper[/]\n\n"
    "Select a note on the left or press [bold]Ctrl+N[/] to create one.\n"
    "Press [bold]Enter[/] twice in the editor to improve your text with AI."
)


class StatusBar(Static):
    """One-line status message."""

    def show(self, message: str, kind: str = "") -> None:
        style = STATUS_STYLES.get(kind, "")
        self.update(Text(f" {message}", style=style) if message else "")


class NoteTextArea(TextArea):
    """Content editor that reports double-Enter instead of inserting a newline."""

    class DoubleEnter(Message):
        """Enter was pressed twice within the detection window."""

    def __init__(self, *args, register_enter=None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._register_enter = register_enter

    async def _on_key(self, event: events.Key) -> None:
        if event.key == "enter" and self._register_enter is not None and self._register_enter():
            event.prevent_default()
            event.stop()
            self.post_message(self.DoubleEnter())
            return
        await super()._on_key(event)


class ConfirmDeleteScreen(ModalScreen[bool]):
    """Yes/no modal shown before a note is deleted."""

    DEFAULT_CSS = """
    ConfirmDeleteScreen {
        align: center middle;
    }

    #confirm-dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: thick $error;
        background: $surface;
    }

    #confirm-buttons {
        height: auto;
        margin-top: 1;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
    ]

    def __init__(self, note: Note) -> None:
        super().__init__()
        self._note = note

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Label(f'Delete "{self._note.title}"? This cannot be undone.')
            with Horizontal(id="confirm-buttons"):
                yield Button("Delete", variant="error", id="confirm-yes")
                yield Button("Cancel", id="confirm-no")

    @on(Button.Pressed, "#confirm-yes")
    def on_yes(self) -> None:
        self.dismiss(True)

    @on(Button.Pressed, "#confirm-no")
    def on_no(self) -> None:
        self.dismiss(False)

    def action_cancel(self) -> None:
        self.dismiss(False)


class NotesTUI(App):
    """Terminal note editor backed by the note store API."""

    TITLE = "Notekeeper"
    SUB_TITLE = "Notes with AI text improvement"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main {
        height: 1fr;
    }

    #notes-list {
        width: 40;
        border: solid $primary;
    }

    #editor {
        width: 1fr;
        padding: 0 1;
    }

    #title-input {
        margin: 0 0 1 0;
    }

    #content-area {
        height: 1fr;
    }

    #welcome {
        width: 1fr;
        padding: 2 4;
    }

    .note-date {
        color: $text-muted;
    }

    StatusBar {
        dock: bottom;
        height: 1;
        background: $surface;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+n", "new_note", "New"),
        Binding("ctrl+s", "save_note", "Save"),
        Binding("ctrl+d", "delete_note", "Delete"),
        Binding("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, debug: bool = False, api: APIClient | None = None) -> None:
        super().__init__()
        self._debug = debug
        self._api = api or APIClient(frontend_id="tui")
        config = get_app_config().editor
        self.controller = EditorStateController.from_config(
            RemoteStoreClient(self._api),
            self,
            config,
            assist=build_assist_service(self._api, config.assist),
            confirm=self._confirm_delete,
        )
        self._preview_length = config.preview_length

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main"):
            yield ListView(id="notes-list")
            yield Static(WELCOME_TEXT, id="welcome")
            with Vertical(id="editor"):
                yield Input(placeholder="Note title", id="title-input")
                yield NoteTextArea(
                    id="content-area",
                    register_enter=self.controller.register_enter,
                )
        yield StatusBar()
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#editor").display = False
        self._load_notes()

    # -------------------------------------------------------------------------
    # EditorView
    # -------------------------------------------------------------------------

    def render_notes(self, notes: list[Note], selected_id: str | None) -> None:
        self._rebuild_list(notes, selected_id)

    def show_editor(self, title: str, content: str) -> None:
        self.query_one("#welcome").display = False
        self.query_one("#editor").display = True
        title_input = self.query_one("#title-input", Input)
        if title_input.value != title:
            title_input.value = title
        content_area = self.query_one("#content-area", NoteTextArea)
        if content_area.text != content:
            content_area.load_text(content)

    def show_welcome(self) -> None:
        self.query_one("#editor").display = False
        self.query_one("#welcome").display = True

    def show_status(self, message: str, kind: str = "") -> None:
        self.query_one(StatusBar).show(message, kind)

    @work(exclusive=True, group="notes-list")
    async def _rebuild_list(self, notes: list[Note], selected_id: str | None) -> None:
        list_view = self.query_one("#notes-list", ListView)
        await list_view.clear()
        items = [
            ListItem(
                Label(Text(note.title, style="bold")),
                Label(note_preview(note.content, self._preview_length)),
                Label(format_relative_date(note.updated_at), classes="note-date"),
                name=note.id,
            )
            for note in notes
        ]
        await list_view.extend(items)
        for index, note in enumerate(notes):
            if note.id == selected_id:
                list_view.index = index
                break

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    @on(ListView.Selected, "#notes-list")
    def on_note_selected(self, event: ListView.Selected) -> None:
        note_id = event.item.name
        if note_id and note_id != self.controller.selected_id:
            self.controller.select_note(note_id)

    @on(Input.Changed, "#title-input")
    def on_title_changed(self, event: Input.Changed) -> None:
        if event.value != self.controller.title_buffer:
            self.controller.edit_title(event.value)

    @on(TextArea.Changed, "#content-area")
    def on_content_changed(self, event: TextArea.Changed) -> None:
        text = event.text_area.text
        if text != self.controller.content_buffer:
            self.controller.edit_content(text)

    @on(NoteTextArea.DoubleEnter)
    def on_double_enter(self) -> None:
        self._improve()

    # -------------------------------------------------------------------------
    # Workers
    # -------------------------------------------------------------------------

    @work(group="store")
    async def _load_notes(self) -> None:
        try:
            await self.controller.load_notes()
        except ClientError as e:
            log_with_source(logger, "tui", "warning", "Load failed", error=e.message)

    @work(group="assist")
    async def _improve(self) -> None:
        try:
            await self.controller.improve_content()
        except ClientError as e:
            log_with_source(logger, "tui", "warning", "Improve failed", error=e.message)

    async def _confirm_delete(self, note: Note) -> bool:
        return bool(await self.push_screen_wait(ConfirmDeleteScreen(note)))

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    @work(group="store")
    async def action_new_note(self) -> None:
        try:
            await self.controller.create_note()
        except ClientError as e:
            log_with_source(logger, "tui", "warning", "Create failed", error=e.message)
            return
        self.query_one("#title-input", Input).focus()

    @work(group="store")
    async def action_save_note(self) -> None:
        try:
            await self.controller.save_current()
        except ClientError as e:
            log_with_source(logger, "tui", "warning", "Save failed", error=e.message)

    @work(group="store")
    async def action_delete_note(self) -> None:
        try:
            await self.controller.delete_note()
        except ClientError as e:
            log_with_source(logger, "tui", "warning", "Delete failed", error=e.message)

    async def action_quit(self) -> None:
        await self.controller.flush()
        self.controller.close()
        await self._api.close()
        self.exit()


def main() -> None:
    debug = "--debug" in sys.argv
    setup_logging(level="DEBUG" if debug else "WARNING", enable_console=False)
    structlog.contextvars.bind_contextvars(source="tui")
    app = NotesTUI(debug=debug)
    app.run()


if __name__ == "__main__":
    main()

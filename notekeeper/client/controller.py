"""
Editor State Controller.

Owns the in-memory note list, the selection, the editor buffers, the
auto-save debounce and double-Enter detection. Persistence goes through
the RemoteStoreClient, assist through an AssistService, and everything
the user sees goes through an EditorView.

Every failure is reported through the view before it is raised. Auto-save
failures are reported and logged only; the timer never raises.
"""

from collections.abc import Awaitable, Callable

from notekeeper.backend.core.config_schema import EditorSchema
from notekeeper.backend.core.logging import get_logger, log_with_source
from notekeeper.client.assist import AssistService
from notekeeper.client.errors import (
    AssistError,
    CreateError,
    DeleteError,
    LoadError,
    RemoteStoreError,
    SaveError,
    ValidationError,
)
from notekeeper.client.models import Note, NoteDraft
from notekeeper.client.scheduling import DoubleEnterDetector, PendingTimer
from notekeeper.client.store import RemoteStoreClient
from notekeeper.client.view import EditorView
from notekeeper.rendering.render import to_editor_format
from notekeeper.rendering.sanitize import html_to_text

logger = get_logger(__name__)

ConfirmGate = Callable[[Note], Awaitable[bool]]

DEFAULT_TITLE = "Untitled Note"


async def _always_confirm(note: Note) -> bool:
    return True


class EditorStateController:
    """
    Headless editor state machine.

    Usage:
        controller = EditorStateController(store, view, assist=assist)
        await controller.load_notes()
        await controller.create_note()
        controller.edit_content("Hello")
        ...
        await controller.flush()
        controller.close()
    """

    def __init__(
        self,
        store: RemoteStoreClient,
        view: EditorView,
        assist: AssistService | None = None,
        confirm: ConfirmGate | None = None,
        *,
        default_title: str = DEFAULT_TITLE,
        content_format: str = "markdown",
        auto_save_delay: float = 1.0,
        auto_save_status: float = 2.0,
        assist_status: float = 3.0,
        double_enter: DoubleEnterDetector | None = None,
    ) -> None:
        self._store = store
        self._view = view
        self._assist = assist
        self._confirm = confirm or _always_confirm
        self.default_title = default_title
        self.content_format = content_format
        self._auto_save_status = auto_save_status
        self._assist_status = assist_status
        self._enter = double_enter or DoubleEnterDetector()

        self._notes: list[Note] = []
        self._drafts: dict[str, NoteDraft] = {}
        self._unsaved: set[str] = set()
        self._selected_id: str | None = None
        self._title = ""
        self._content = ""
        # (note_id, title, content) captured at the last edit
        self._pending_save: tuple[str, str, str] | None = None

        self._auto_save = PendingTimer(auto_save_delay, self._run_auto_save, name="auto-save")
        self._status_clear = PendingTimer(auto_save_status, self._clear_status, name="status-clear")

    @classmethod
    def from_config(
        cls,
        store: RemoteStoreClient,
        view: EditorView,
        config: EditorSchema,
        assist: AssistService | None = None,
        confirm: ConfirmGate | None = None,
    ) -> "EditorStateController":
        """Build a controller from editor.yaml settings."""
        return cls(
            store,
            view,
            assist=assist,
            confirm=confirm,
            default_title=config.default_title,
            content_format=config.content_format,
            auto_save_delay=config.auto_save_delay_ms / 1000,
            auto_save_status=config.auto_save_status_ms / 1000,
            assist_status=config.assist_status_ms / 1000,
            double_enter=DoubleEnterDetector(
                window=config.double_enter_window_ms / 1000,
                min_interval=config.double_enter_min_interval_ms / 1000,
            ),
        )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def notes(self) -> list[Note]:
        return list(self._notes)

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    @property
    def selected_note(self) -> Note | None:
        return self._find(self._selected_id) if self._selected_id else None

    @property
    def title_buffer(self) -> str:
        return self._title

    @property
    def content_buffer(self) -> str:
        return self._content

    @property
    def unsaved_ids(self) -> frozenset[str]:
        return frozenset(self._unsaved)

    @property
    def pending_drafts(self) -> list[NoteDraft]:
        return list(self._drafts.values())

    @property
    def auto_save_pending(self) -> bool:
        return self._auto_save.pending

    def _find(self, note_id: str) -> Note | None:
        index = self._index(note_id)
        return None if index is None else self._notes[index]

    def _index(self, note_id: str) -> int | None:
        for index, note in enumerate(self._notes):
            if note.id == note_id:
                return index
        return None

    def _resort(self) -> None:
        self._notes.sort(key=lambda note: note.updated_at, reverse=True)

    def _render(self) -> None:
        self._view.render_notes(list(self._notes), self._selected_id)

    def _status(self, message: str, kind: str = "", clear_after: float | None = None) -> None:
        self._status_clear.cancel()
        self._view.show_status(message, kind)
        if clear_after:
            self._status_clear.schedule(clear_after)

    async def _clear_status(self) -> None:
        self._view.show_status("", "")

    # -------------------------------------------------------------------------
    # Store operations
    # -------------------------------------------------------------------------

    async def load_notes(self) -> list[Note]:
        """
        Replace the in-memory list with the store's notes.

        Raises:
            LoadError: The list is left empty and an error status is shown
        """
        self._status("Loading notes...", "loading")
        try:
            notes = await self._store.list()
        except RemoteStoreError as e:
            self._notes = []
            self._render()
            self._status("Error loading notes", "error")
            log_with_source(logger, "client", "error", "Failed to load notes", error=e.message)
            raise LoadError() from e

        self._notes = list(notes)
        self._render()
        self._status("")
        if self._selected_id is None or self._find(self._selected_id) is None:
            self._selected_id = None
            self._view.show_welcome()
        log_with_source(logger, "client", "info", "Notes loaded", count=len(notes))
        return list(self._notes)

    async def create_note(self) -> Note:
        """
        Create a note with the default title, put it first and select it.

        Raises:
            CreateError: The pending draft is discarded
        """
        draft = NoteDraft(title=self.default_title, content="")
        self._drafts[draft.draft_id] = draft
        self._status("Creating new note...", "loading")
        try:
            note = await self._store.create(draft.title, draft.content)
        except RemoteStoreError as e:
            self._status("Error creating note", "error")
            log_with_source(logger, "client", "error", "Failed to create note", error=e.message)
            raise CreateError() from e
        finally:
            self._drafts.pop(draft.draft_id, None)

        self._notes.insert(0, note)
        self.select_note(note.id)
        self._status("New note created", "success")
        log_with_source(logger, "client", "info", "Note created", note_id=note.id)
        return note

    def select_note(self, note_id: str) -> bool:
        """Select a note and load it into the editor buffers."""
        note = self._find(note_id)
        if note is None:
            log_with_source(logger, "client", "warning", "Unknown note selected", note_id=note_id)
            return False

        self._selected_id = note.id
        self._title = note.title
        self._content = note.content
        self._enter.reset()
        self._view.show_editor(note.title, note.content)
        self._render()
        return True

    async def save_note(
        self,
        note_id: str,
        title: str,
        content: str,
        is_auto_save: bool = False,
    ) -> Note:
        """
        Persist a note's title and content.

        The in-memory copy takes the edits before the store call and keeps
        them if the call fails; the note is then marked unsaved.

        Raises:
            SaveError: Unknown note or store failure
        """
        title = title.strip() or self.default_title
        index = self._index(note_id)
        if index is None:
            log_with_source(logger, "client", "warning", "Save for unknown note", note_id=note_id)
            raise SaveError("Note not found")

        self._notes[index] = self._notes[index].with_changes(title=title, content=content)
        if not is_auto_save:
            self._status("Saving...", "loading")

        try:
            saved = await self._store.update(note_id, title=title, content=content)
        except RemoteStoreError as e:
            self._unsaved.add(note_id)
            self._render()
            self._status("Error saving note", "error")
            log_with_source(
                logger,
                "client",
                "error",
                "Failed to save note",
                note_id=note_id,
                auto_save=is_auto_save,
                error=e.message,
            )
            raise SaveError() from e

        index = self._index(note_id)
        if index is not None:
            current = self._notes[index]
            if (current.title, current.content) == (title, content):
                self._notes[index] = saved
                self._unsaved.discard(note_id)
            else:
                # Edited again while the save was in flight
                self._notes[index] = saved.with_changes(
                    title=current.title, content=current.content
                )
            self._resort()
            self._render()

        if is_auto_save:
            self._status("Auto-saved", "success", clear_after=self._auto_save_status)
        else:
            self._status("Note saved!", "success")
        log_with_source(
            logger, "client", "debug", "Note saved", note_id=note_id, auto_save=is_auto_save
        )
        return saved

    async def save_current(self, is_auto_save: bool = False) -> Note | None:
        """Save the selected note from the editor buffers."""
        if self._selected_id is None:
            return None
        if self._pending_save and self._pending_save[0] == self._selected_id:
            self._auto_save.cancel()
            self._pending_save = None
        return await self.save_note(
            self._selected_id, self._title, self._content, is_auto_save=is_auto_save
        )

    async def delete_note(self, note_id: str | None = None) -> bool:
        """
        Delete a note after confirmation.

        Returns:
            True if deleted, False if declined or nothing to delete

        Raises:
            DeleteError: Store and memory are left unchanged
        """
        note_id = note_id or self._selected_id
        note = self._find(note_id) if note_id else None
        if note is None:
            return False

        if not await self._confirm(note):
            return False

        self._status("Deleting note...", "loading")
        try:
            await self._store.delete(note.id)
        except RemoteStoreError as e:
            self._status("Error deleting note", "error")
            log_with_source(
                logger, "client", "error", "Failed to delete note", note_id=note.id, error=e.message
            )
            raise DeleteError() from e

        self._notes = [item for item in self._notes if item.id != note.id]
        self._unsaved.discard(note.id)
        if self._pending_save and self._pending_save[0] == note.id:
            self._auto_save.cancel()
            self._pending_save = None

        if self._selected_id == note.id:
            self._selected_id = None
            self._title = ""
            self._content = ""
            self._view.show_welcome()

        self._render()
        self._status("Note deleted", "success")
        log_with_source(logger, "client", "info", "Note deleted", note_id=note.id)
        return True

    # -------------------------------------------------------------------------
    # Editing and auto-save
    # -------------------------------------------------------------------------

    def edit_title(self, text: str) -> None:
        self._title = text
        self._schedule_auto_save()

    def edit_content(self, text: str) -> None:
        self._content = text
        self._schedule_auto_save()

    def _schedule_auto_save(self) -> None:
        if self._selected_id is None:
            return
        self._pending_save = (self._selected_id, self._title, self._content)
        self._auto_save.schedule()

    async def _run_auto_save(self) -> None:
        pending, self._pending_save = self._pending_save, None
        if pending is None:
            return
        try:
            await self.save_note(*pending, is_auto_save=True)
        except SaveError as e:
            log_with_source(
                logger, "client", "warning", "Auto-save failed", note_id=pending[0], error=e.message
            )

    async def flush(self) -> None:
        """Persist a pending auto-save now and wait for running ones."""
        await self._auto_save.flush()
        await self._auto_save.drain()

    def close(self) -> None:
        """Cancel timers. Pending edits not flushed are dropped."""
        self._auto_save.cancel()
        self._status_clear.cancel()
        self._pending_save = None

    # -------------------------------------------------------------------------
    # Assist
    # -------------------------------------------------------------------------

    def register_enter(self) -> bool:
        """True if this Enter completes a double-Enter."""
        return self._enter.register()

    async def handle_enter(self) -> bool:
        """
        Register an Enter press and run assist on a double-Enter.

        Returns:
            True if the press completed a double-Enter; the caller then
            suppresses the newline

        Raises:
            AssistError: From improve_content
        """
        if not self.register_enter():
            return False
        await self.improve_content()
        return True

    async def improve_content(self) -> str | None:
        """
        Replace the content buffer with improved text and auto-save it.

        Returns:
            The new content, or None when refused (busy, empty, no service)

        Raises:
            AssistError: Content is left unchanged
        """
        if self._assist is None:
            self._status("AI assist is not configured", "error")
            return None
        if not self._assist.is_available():
            self._status("AI is busy, please wait...", "loading")
            return None

        text = self._content
        if self.content_format == "html":
            text = html_to_text(text)
        if not text.strip():
            self._status("No text to improve", "error")
            return None

        note_id = self._selected_id
        self._status("AI is improving your text...", "loading")
        try:
            improved = await self._assist.improve(text)
        except ValidationError:
            self._status("No text to improve", "error")
            return None
        except AssistError as e:
            self._status(e.message, "error")
            log_with_source(
                logger, "client", "warning", "Text improvement failed", reason=e.reason.value
            )
            raise

        if improved is None:
            self._status("AI is busy, please wait...", "loading")
            return None
        if self._selected_id != note_id:
            log_with_source(
                logger, "client", "info", "Selection changed during improvement, result dropped"
            )
            self._status("")
            return None

        converted = to_editor_format(improved, self.content_format)
        self._content = converted
        self._view.show_editor(self._title, converted)

        if note_id is not None:
            if self._pending_save and self._pending_save[0] == note_id:
                self._auto_save.cancel()
                self._pending_save = None
            try:
                await self.save_note(note_id, self._title, converted, is_auto_save=True)
            except SaveError:
                return converted

        self._status("Text improved by AI!", "success", clear_after=self._assist_status)
        return converted

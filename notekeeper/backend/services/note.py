"""
Note Service.

Business logic layer for the note store. Orchestrates the repository,
validates input, and applies the store's timestamp and ordering rules.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.backend.models.note import Note
from notekeeper.backend.repositories.note import NoteRepository
from notekeeper.backend.schemas.note import NoteCreate, NoteUpdate
from notekeeper.backend.services.base import BaseService


class NoteService(BaseService):
    """
    Service for note business logic.

    The store assigns ids and timestamps; clients never send them.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = NoteRepository(session)

    async def create_note(self, data: NoteCreate) -> Note:
        """
        Create a new note.

        Args:
            data: Note creation data

        Returns:
            Created note with store-assigned id and timestamps
        """
        self._validate_required({"title": data.title}, ["title"])
        self._log_operation("Creating note", title=data.title)

        note = await self._execute_db_operation(
            "create_note",
            self.repo.create(title=data.title, content=data.content),
        )

        self._log_debug("Note created", note_id=note.id)
        return note

    async def get_note(self, note_id: str) -> Note:
        """
        Get a note by ID.

        Raises:
            NotFoundError: If note not found
        """
        return await self.repo.get_by_id(note_id)

    async def list_notes(self, limit: int = 500, offset: int = 0) -> list[Note]:
        """
        List notes, most recently updated first.

        Args:
            limit: Maximum number of notes
            offset: Number to skip

        Returns:
            List of notes ordered by updated_at descending
        """
        return await self._execute_db_operation(
            "list_notes",
            self.repo.list_recent(limit=limit, offset=offset),
        )

    async def update_note(self, note_id: str, data: NoteUpdate) -> Note:
        """
        Update an existing note.

        Only fields present in the request change, but updated_at is
        refreshed on every call, including an empty update.

        Args:
            note_id: Note ID to update
            data: Update data

        Returns:
            Updated note

        Raises:
            NotFoundError: If note not found
        """
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if "title" in update_data:
            self._validate_required(update_data, ["title"])

        self._log_operation(
            "Updating note",
            note_id=note_id,
            fields=sorted(update_data.keys()),
        )

        return await self._execute_db_operation(
            "update_note",
            self.repo.touch_update(note_id, **update_data),
        )

    async def delete_note(self, note_id: str) -> None:
        """
        Delete a note.

        Raises:
            NotFoundError: If note not found
        """
        self._log_operation("Deleting note", note_id=note_id)

        await self._execute_db_operation(
            "delete_note",
            self.repo.delete(note_id),
        )

"""
Note Repository.

Data access layer for notes. Handles all database operations
for the Note model.
"""

from typing import Any

from sqlalchemy import select

from notekeeper.backend.core.utils import utc_now
from notekeeper.backend.models.note import Note
from notekeeper.backend.repositories.base import BaseRepository


class NoteRepository(BaseRepository[Note]):
    """
    Repository for Note model.

    Inherits standard CRUD operations from BaseRepository
    and adds the store's ordering and timestamp rules.
    """

    model = Note

    async def list_recent(
        self,
        limit: int = 500,
        offset: int = 0,
    ) -> list[Note]:
        """
        Get notes, most recently updated first.

        Args:
            limit: Maximum number of notes to return
            offset: Number of notes to skip

        Returns:
            Notes ordered by updated_at descending
        """
        result = await self.session.execute(
            select(Note)
            .order_by(Note.updated_at.desc(), Note.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def touch_update(self, id: str, **fields: Any) -> Note:
        """
        Update a note and always refresh its updated_at.

        The ORM only bumps onupdate columns when a value actually changed;
        the store contract refreshes the timestamp on every persist.

        Raises:
            NotFoundError: If note not found
        """
        current = await self.get_by_id(id)
        # Never move the timestamp backwards if the clock stepped back
        stamp = max(utc_now(), current.updated_at)
        return await self.update(id, updated_at=stamp, **fields)

"""
Client Models.

Immutable note documents as the client holds them. Edits produce
copies, never in-place mutation.
"""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class Note(BaseModel):
    """A note as confirmed by the store."""

    id: str
    title: str
    content: str = ""
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)

    def with_changes(self, **fields: object) -> "Note":
        """Return a copy with the given fields replaced."""
        return self.model_copy(update=fields)


class NoteDraft(BaseModel):
    """A note that has been requested from the store but not yet confirmed."""

    draft_id: str = Field(default_factory=lambda: str(uuid4()))
    title: str
    content: str = ""

    model_config = ConfigDict(frozen=True)

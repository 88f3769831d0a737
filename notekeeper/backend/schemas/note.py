"""
Note Schemas.

Pydantic schemas for note store request/response validation.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

TITLE_MAX_LENGTH = 255
CONTENT_MAX_LENGTH = 200_000


class NoteCreate(BaseModel):
    """Schema for creating a new note."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=TITLE_MAX_LENGTH,
        description="Note title",
        examples=["Untitled Note"],
    )
    content: str = Field(
        default="",
        max_length=CONTENT_MAX_LENGTH,
        description="Note content (Markdown or HTML)",
        examples=["# Groceries\n\n- milk\n- eggs"],
    )


class NoteUpdate(BaseModel):
    """Schema for updating an existing note. Only provided fields change."""

    title: str | None = Field(
        default=None,
        min_length=1,
        max_length=TITLE_MAX_LENGTH,
        description="Note title",
    )
    content: str | None = Field(
        default=None,
        max_length=CONTENT_MAX_LENGTH,
        description="Note content",
    )


class NoteResponse(BaseModel):
    """Schema for a note in API responses."""

    id: str = Field(description="Note unique identifier")
    title: str = Field(description="Note title")
    content: str = Field(description="Note content")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

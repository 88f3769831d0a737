"""
Note Model.

Database model for the note documents held by the store.
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from notekeeper.backend.models.base import Base, TimestampMixin, UUIDMixin


class Note(UUIDMixin, TimestampMixin, Base):
    """
    Note database model.

    A titled document with free-form Markdown (or HTML) content.
    The id and both timestamps are assigned by the store.
    """

    __tablename__ = "notes"

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title={self.title!r})>"

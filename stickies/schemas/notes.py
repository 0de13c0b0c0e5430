"""
Note Schemas

Pydantic models for Note API request/response validation.
Separates concerns: NoteCreate (input), NoteUpdate (partial), NoteRead (output).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from stickies.models import NoteColor, NoteSource, NoteState


class NoteCreate(BaseModel):
    """Request schema for POST /notes."""

    content: str = Field(
        ...,
        min_length=1,
        max_length=10_000,
        description="Note text",
    )
    source: NoteSource = Field(default=NoteSource.TEXT)
    raw_transcript: str | None = Field(
        default=None,
        description="Unedited transcript for voice notes",
    )
    color: NoteColor | None = Field(
        default=None,
        description="Color tag (random when omitted)",
    )


class NoteUpdate(BaseModel):
    """
    Request schema for PATCH /notes/{id}.

    All fields optional to support partial updates; state changes go
    through the dedicated transition endpoints.
    """

    content: str | None = Field(None, min_length=1, max_length=10_000)
    color: NoteColor | None = None
    linked_to: str | None = None


class NoteRead(BaseModel):
    """Full Note representation."""

    id: str
    content: str
    state: NoteState
    color: NoteColor
    source: NoteSource
    raw_transcript: str | None = None
    position: int
    created_at: datetime
    updated_at: datetime
    snoozed_until: datetime | None = None
    last_surfaced_at: datetime | None = None
    linked_to: str | None = None

    model_config = ConfigDict(from_attributes=True)  # Enables model conversion


class SnoozeRequest(BaseModel):
    """Request schema for POST /notes/{id}/snooze."""

    until: datetime = Field(..., description="When the note returns to the inbox")


class ReorderRequest(BaseModel):
    """Request schema for POST /notes/reorder."""

    note_ids: list[str] = Field(
        ...,
        min_length=1,
        description="Note ids in the desired top-to-bottom order",
    )


class InboxCount(BaseModel):
    """Response schema for GET /notes/inbox/count."""

    count: int

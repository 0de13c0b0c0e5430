"""
Domain Schemas

Pydantic models for the values that flow between the store, the
embedding/search/clustering services and the API layer.

Notes and clusters are frozen: services treat them as immutable values
for the duration of an operation and ask the store for changes.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from enum import StrEnum
from typing import NamedTuple, TypeAlias

import numpy as np
import numpy.typing as npt
from pydantic import BaseModel, ConfigDict, Field

# Anything the similarity engine accepts: plain lists, tuples or numpy arrays
VectorLike: TypeAlias = Sequence[float] | npt.NDArray[np.floating]


class NoteState(StrEnum):
    """Lifecycle state of a note."""

    INBOX = "inbox"
    ACTIVE = "active"
    SNOOZED = "snoozed"
    ARCHIVED = "archived"


class NoteColor(StrEnum):
    """Color tag shown on the sticky."""

    YELLOW = "yellow"
    PINK = "pink"
    BLUE = "blue"
    GREEN = "green"


class NoteSource(StrEnum):
    """How the note was captured."""

    TEXT = "text"
    VOICE = "voice"


class Note(BaseModel):
    """
    A captured note.

    Attributes:
        id: Opaque unique identifier (UUID4 string).
        content: Note text; this is what gets embedded.
        state: Lifecycle state (inbox → active/snoozed/archived).
        color: Color tag.
        source: Capture channel; voice notes may keep the raw transcript.
        position: Manual sort order (ascending). New notes go on top.
        snoozed_until: Set while the note is snoozed.
        last_surfaced_at: Last time the note was shown for rediscovery.
        linked_to: Optional id of a related note.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    content: str
    state: NoteState = NoteState.INBOX
    color: NoteColor = NoteColor.YELLOW
    source: NoteSource = NoteSource.TEXT
    raw_transcript: str | None = None
    position: int = 0
    created_at: datetime
    updated_at: datetime
    snoozed_until: datetime | None = None
    last_surfaced_at: datetime | None = None
    linked_to: str | None = None


class NoteChanges(BaseModel):
    """
    Partial update for a note.

    Only fields explicitly set are applied (``model_dump(exclude_unset=True)``),
    so ``snoozed_until=None`` clears the field while omitting it leaves it alone.
    """

    content: str | None = None
    color: NoteColor | None = None
    state: NoteState | None = None
    snoozed_until: datetime | None = None
    last_surfaced_at: datetime | None = None
    linked_to: str | None = None


class Cluster(BaseModel):
    """
    A topical group of notes produced by one clustering run.

    Attributes:
        id: Cluster identifier (UUID4 string), new on every run.
        name: Display name, "Cluster N" until something better names it.
        description: Optional longer label.
        note_ids: Member note ids; disjoint across clusters of one run.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    description: str | None = None
    note_ids: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class NoteVector(NamedTuple):
    """A note paired with its stored embedding."""

    note: Note
    vector: VectorLike


class SearchMode(StrEnum):
    """Which scoring produced a result list."""

    SEMANTIC = "semantic"
    LEXICAL = "lexical"


class SearchResult(BaseModel):
    """Transient (note, relevance score) pair. Never persisted."""

    note: Note
    score: float

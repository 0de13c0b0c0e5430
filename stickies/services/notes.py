"""
Note Service

Note capture and the inbox lifecycle:

    inbox ──activate──▶ active
      │                   │
      ├──snooze(until)──▶ snoozed ──(due / unsnooze)──▶ inbox
      │                   │
      └──archive────────▶ archived ──(rediscovery)──▶ surfaced again

New notes enter the inbox at the top of the manual order
(``position = min(position) - 1``). Embedding is not done here: callers
schedule ``IndexingService.index_note_background`` after create/edit.
"""

from __future__ import annotations

import logging
import random
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from stickies.core.exceptions import NoteNotFoundError
from stickies.models import Note, NoteChanges, NoteColor, NoteSource, NoteState
from stickies.models.base import utcnow
from stickies.repositories.store import NoteStore

logger = logging.getLogger(__name__)

# Rediscovery: archived notes untouched for 3 days, not shown in the last 7
REDISCOVERY_MIN_AGE = timedelta(days=3)
RESURFACE_INTERVAL = timedelta(days=7)


def _aware(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=UTC)


class NoteService:
    """
    CRUD and state transitions for notes.

    Args:
        store: Note store.
        rng: Random source for default colors and rediscovery picks.
    """

    def __init__(self, store: NoteStore, rng: random.Random | None = None) -> None:
        self._store = store
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_note(
        self,
        content: str,
        *,
        source: NoteSource = NoteSource.TEXT,
        raw_transcript: str | None = None,
        color: NoteColor | None = None,
    ) -> Note:
        """
        Capture a new note in the inbox, on top of the manual order.

        Raises:
            ValueError: If ``content`` is blank.
        """
        if not content.strip():
            raise ValueError("Note content must not be empty")

        min_position = await self._store.min_position()
        now = utcnow()
        note = Note(
            id=str(uuid.uuid4()),
            content=content,
            state=NoteState.INBOX,
            color=color or self._rng.choice(list(NoteColor)),
            source=source,
            raw_transcript=raw_transcript,
            position=(min_position if min_position is not None else 0) - 1,
            created_at=now,
            updated_at=now,
        )
        created = await self._store.create_note(note)
        logger.info("Created note %s (%s)", created.id[:8], created.source)
        return created

    async def get_note(self, note_id: str) -> Note:
        """Raises NoteNotFoundError if missing."""
        note = await self._store.get_note(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        return note

    async def list_notes(self, state: NoteState | None = None) -> list[Note]:
        """Notes in manual order, optionally filtered by state."""
        return await self._store.list_notes(state)

    async def update_note(self, note_id: str, changes: NoteChanges) -> Note:
        """Apply the fields explicitly set on ``changes``."""
        data = changes.model_dump(exclude_unset=True)
        if "content" in data and (data["content"] is None or not data["content"].strip()):
            raise ValueError("Note content must not be empty")
        return await self._apply(note_id, data)

    async def delete_note(self, note_id: str) -> None:
        """Delete a note; its embedding goes with it."""
        if not await self._store.delete_note(note_id):
            raise NoteNotFoundError(note_id)
        logger.info("Deleted note %s", note_id[:8])

    async def reorder(self, note_ids: Sequence[str]) -> None:
        """Set the manual order: ``note_ids[i]`` gets position ``i``."""
        await self._store.reorder(note_ids)

    async def inbox_count(self) -> int:
        return await self._store.count_notes(NoteState.INBOX)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    async def archive(self, note_id: str) -> Note:
        return await self._apply(note_id, {"state": NoteState.ARCHIVED, "snoozed_until": None})

    async def activate(self, note_id: str) -> Note:
        return await self._apply(note_id, {"state": NoteState.ACTIVE, "snoozed_until": None})

    async def unsnooze(self, note_id: str) -> Note:
        return await self._apply(note_id, {"state": NoteState.INBOX, "snoozed_until": None})

    async def snooze(self, note_id: str, until: datetime) -> Note:
        """Hide a note until ``until`` (naive datetimes are taken as UTC)."""
        return await self._apply(
            note_id, {"state": NoteState.SNOOZED, "snoozed_until": _aware(until)}
        )

    async def process_snoozed(self, now: datetime | None = None) -> list[Note]:
        """Move every snoozed note that is due back to the inbox."""
        now = _aware(now or utcnow())
        due = [
            note
            for note in await self._store.list_notes(NoteState.SNOOZED)
            if note.snoozed_until is not None and _aware(note.snoozed_until) <= now
        ]
        woken = [await self.unsnooze(note.id) for note in due]
        if woken:
            logger.info("Unsnoozed %d due notes", len(woken))
        return woken

    async def rediscovery_candidate(self, now: datetime | None = None) -> Note | None:
        """
        A random archived note worth resurfacing, or None.

        Eligible: archived, not updated for ``REDISCOVERY_MIN_AGE`` and not
        surfaced within ``RESURFACE_INTERVAL``.
        """
        now = _aware(now or utcnow())
        candidates = [
            note
            for note in await self._store.list_notes(NoteState.ARCHIVED)
            if _aware(note.updated_at) <= now - REDISCOVERY_MIN_AGE
            and (
                note.last_surfaced_at is None
                or _aware(note.last_surfaced_at) <= now - RESURFACE_INTERVAL
            )
        ]
        if not candidates:
            return None
        return self._rng.choice(candidates)

    async def mark_surfaced(self, note_id: str, now: datetime | None = None) -> Note:
        return await self._apply(note_id, {"last_surfaced_at": _aware(now or utcnow())})

    async def _apply(self, note_id: str, data: dict[str, object]) -> Note:
        note = await self._store.update_note(note_id, data)
        if note is None:
            raise NoteNotFoundError(note_id)
        return note

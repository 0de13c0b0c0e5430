"""
Note Service Unit Tests

Verifies note capture, manual ordering, partial updates and the inbox
lifecycle (archive, activate, snooze, rediscovery) on the in-memory store.

No external services required — runs entirely offline.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from stickies.core.exceptions import NoteNotFoundError
from stickies.models import NoteChanges, NoteColor, NoteSource, NoteState
from stickies.models.base import utcnow

# ---------------------------------------------------------------------------
# Capture
# ---------------------------------------------------------------------------


class TestCreate:
    """Tests for NoteService.create_note."""

    @pytest.mark.asyncio
    async def test_new_note_lands_in_inbox(self, note_service):
        note = await note_service.create_note("Buy groceries: milk, eggs, bread")

        assert note.state == NoteState.INBOX
        assert note.source == NoteSource.TEXT
        assert note.color in set(NoteColor)
        assert note.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_new_notes_go_on_top(self, note_service):
        first = await note_service.create_note("first")
        second = await note_service.create_note("second")

        assert first.position == -1
        assert second.position == -2
        listed = await note_service.list_notes()
        assert [n.id for n in listed] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_voice_note_keeps_transcript(self, note_service):
        note = await note_service.create_note(
            "Call mom",
            source=NoteSource.VOICE,
            raw_transcript="uh call mom tonight",
            color=NoteColor.PINK,
        )

        assert note.source == NoteSource.VOICE
        assert note.raw_transcript == "uh call mom tonight"
        assert note.color == NoteColor.PINK

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   \n"])
    async def test_blank_content_rejected(self, note_service, content):
        with pytest.raises(ValueError):
            await note_service.create_note(content)

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, note_service):
        notes = [await note_service.create_note(f"note {i}") for i in range(5)]
        assert len({n.id for n in notes}) == 5


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


class TestCrud:
    """Read, update, delete and reorder."""

    @pytest.mark.asyncio
    async def test_get_missing_raises(self, note_service):
        with pytest.raises(NoteNotFoundError):
            await note_service.get_note("missing")

    @pytest.mark.asyncio
    async def test_partial_update(self, note_service):
        note = await note_service.create_note("draft", color=NoteColor.BLUE)

        updated = await note_service.update_note(note.id, NoteChanges(content="final"))

        assert updated.content == "final"
        assert updated.color == NoteColor.BLUE
        assert updated.updated_at >= note.updated_at

    @pytest.mark.asyncio
    async def test_update_rejects_blank_content(self, note_service):
        note = await note_service.create_note("draft")
        with pytest.raises(ValueError):
            await note_service.update_note(note.id, NoteChanges(content=" "))

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, note_service):
        with pytest.raises(NoteNotFoundError):
            await note_service.update_note("missing", NoteChanges(content="x"))

    @pytest.mark.asyncio
    async def test_delete(self, note_service):
        note = await note_service.create_note("temporary")

        await note_service.delete_note(note.id)

        with pytest.raises(NoteNotFoundError):
            await note_service.get_note(note.id)
        with pytest.raises(NoteNotFoundError):
            await note_service.delete_note(note.id)

    @pytest.mark.asyncio
    async def test_reorder(self, note_service):
        a = await note_service.create_note("a")
        b = await note_service.create_note("b")
        c = await note_service.create_note("c")

        await note_service.reorder([a.id, c.id, b.id])

        listed = await note_service.list_notes()
        assert [n.id for n in listed] == [a.id, c.id, b.id]
        assert [n.position for n in listed] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_inbox_count(self, note_service):
        a = await note_service.create_note("a")
        await note_service.create_note("b")
        await note_service.archive(a.id)

        assert await note_service.inbox_count() == 1


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    """State transitions between inbox, active, snoozed and archived."""

    @pytest.mark.asyncio
    async def test_activate_and_archive(self, note_service):
        note = await note_service.create_note("task")

        active = await note_service.activate(note.id)
        archived = await note_service.archive(note.id)

        assert active.state == NoteState.ACTIVE
        assert archived.state == NoteState.ARCHIVED
        assert await note_service.list_notes(NoteState.ARCHIVED) == [archived]

    @pytest.mark.asyncio
    async def test_transition_missing_note_raises(self, note_service):
        with pytest.raises(NoteNotFoundError):
            await note_service.archive("missing")

    @pytest.mark.asyncio
    async def test_snooze_and_unsnooze(self, note_service):
        note = await note_service.create_note("later")
        until = utcnow() + timedelta(hours=2)

        snoozed = await note_service.snooze(note.id, until)
        assert snoozed.state == NoteState.SNOOZED
        assert snoozed.snoozed_until == until

        woken = await note_service.unsnooze(note.id)
        assert woken.state == NoteState.INBOX
        assert woken.snoozed_until is None

    @pytest.mark.asyncio
    async def test_naive_snooze_time_is_utc(self, note_service):
        note = await note_service.create_note("later")
        snoozed = await note_service.snooze(note.id, datetime(2030, 1, 1, 9, 0))
        assert snoozed.snoozed_until == datetime(2030, 1, 1, 9, 0, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_process_snoozed_wakes_only_due_notes(self, note_service):
        now = utcnow()
        due = await note_service.create_note("due")
        later = await note_service.create_note("later")
        await note_service.snooze(due.id, now - timedelta(minutes=1))
        await note_service.snooze(later.id, now + timedelta(days=1))

        woken = await note_service.process_snoozed(now)

        assert [n.id for n in woken] == [due.id]
        assert (await note_service.get_note(due.id)).state == NoteState.INBOX
        assert (await note_service.get_note(later.id)).state == NoteState.SNOOZED


# ---------------------------------------------------------------------------
# Rediscovery
# ---------------------------------------------------------------------------


class TestRediscovery:
    """Resurfacing old archived notes."""

    @pytest.mark.asyncio
    async def test_recently_archived_not_eligible(self, note_service):
        note = await note_service.create_note("old idea")
        await note_service.archive(note.id)

        assert await note_service.rediscovery_candidate() is None

    @pytest.mark.asyncio
    async def test_old_archived_note_resurfaces(self, note_service):
        note = await note_service.create_note("old idea")
        await note_service.archive(note.id)
        later = utcnow() + timedelta(days=4)

        candidate = await note_service.rediscovery_candidate(later)

        assert candidate is not None
        assert candidate.id == note.id

    @pytest.mark.asyncio
    async def test_recently_surfaced_not_eligible(self, note_service):
        note = await note_service.create_note("old idea")
        await note_service.archive(note.id)
        later = utcnow() + timedelta(days=4)

        # Surfacing also bumps updated_at, so check a week after that
        await note_service.mark_surfaced(note.id, later)
        assert await note_service.rediscovery_candidate(later + timedelta(days=1)) is None
        assert await note_service.rediscovery_candidate(later + timedelta(days=8)) is not None

    @pytest.mark.asyncio
    async def test_non_archived_never_resurfaces(self, note_service):
        await note_service.create_note("still in inbox")
        later = utcnow() + timedelta(days=30)
        assert await note_service.rediscovery_candidate(later) is None

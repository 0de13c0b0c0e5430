"""
Indexing Service Unit Tests

Verifies that notes get exactly one stored vector, that background
indexing never raises into the caller, how failures are retried, and
that indexing of a single note is serialized.

Uses the in-memory store and fake providers — runs entirely offline.
"""

from __future__ import annotations

import asyncio

import numpy as np
import pytest

from stickies.core.exceptions import (
    NoteNotFoundError,
    ProviderLoadFailedError,
    ProviderUnavailableError,
)
from stickies.models import NoteChanges
from stickies.services.embeddings import EmbeddingService
from stickies.services.indexing import IndexingService

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class SlowProvider:
    """Provider that sleeps during embed and records peak concurrency."""

    def __init__(self, dimension: int = 8, delay: float = 0.01) -> None:
        self.name = "slow-fake"
        self.dimension = dimension
        self._delay = delay
        self.in_flight = 0
        self.peak = 0

    async def embed(self, text: str) -> list[float]:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self._delay)
            return [float(len(text))] + [0.0] * (self.dimension - 1)
        finally:
            self.in_flight -= 1


# ---------------------------------------------------------------------------
# Direct indexing
# ---------------------------------------------------------------------------


class TestIndexNote:
    """Tests for index_note and index_note_by_id."""

    @pytest.mark.asyncio
    async def test_stores_vector_and_model(self, store, note_service, indexer, provider):
        note = await note_service.create_note("Buy groceries: milk, eggs, bread")

        await indexer.index_note(note)

        np.testing.assert_allclose(
            await store.get_vector(note.id), provider.vector_for(note.content)
        )
        assert store.vector_model(note.id) == "concept-fake"

    @pytest.mark.asyncio
    async def test_reindex_replaces_vector(self, store, note_service, indexer, provider):
        note = await note_service.create_note("milk")
        await indexer.index_note(note)

        await note_service.update_note(note.id, NoteChanges(content="dentist"))
        assert await indexer.index_note_by_id(note.id) is True

        assert len(await store.list_vectors()) == 1
        np.testing.assert_allclose(
            await store.get_vector(note.id), provider.vector_for("dentist")
        )

    @pytest.mark.asyncio
    async def test_by_id_missing_note(self, indexer):
        assert await indexer.index_note_by_id("ghost") is False

    @pytest.mark.asyncio
    async def test_deleted_note_raises(self, note_service, indexer):
        note = await note_service.create_note("short-lived")
        await note_service.delete_note(note.id)

        with pytest.raises(NoteNotFoundError):
            await indexer.index_note(note)

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self, note_service, indexer, provider):
        note = await note_service.create_note("milk")
        provider.error = ProviderUnavailableError("offline")

        with pytest.raises(ProviderUnavailableError):
            await indexer.index_note(note)


# ---------------------------------------------------------------------------
# Background indexing
# ---------------------------------------------------------------------------


class TestBackground:
    """index_note_background never raises and retries only transient errors."""

    @pytest.mark.asyncio
    async def test_success(self, store, note_service, indexer):
        note = await note_service.create_note("milk")

        assert await indexer.index_note_background(note.id) is True
        assert await store.get_vector(note.id) is not None

    @pytest.mark.asyncio
    async def test_unavailable_is_retried(self, store, note_service, indexer, provider):
        note = await note_service.create_note("milk")
        provider.error = ProviderUnavailableError("offline")

        assert await indexer.index_note_background(note.id) is False

        assert len(provider.calls) == 2  # max_retries in the fixture
        assert await store.get_vector(note.id) is None

    @pytest.mark.asyncio
    async def test_load_failure_not_retried(self, note_service, indexer, provider):
        note = await note_service.create_note("milk")
        provider.error = ProviderLoadFailedError("model missing")

        assert await indexer.index_note_background(note.id) is False
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_missing_note(self, indexer, provider):
        assert await indexer.index_note_background("ghost") is False
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_unexpected_error_swallowed(self, store, note_service):
        """A provider returning the wrong length is logged, not raised."""
        wrong = SlowProvider(dimension=8)
        wrong.dimension = 4  # declared size disagrees with the output
        indexer = IndexingService(store, EmbeddingService(wrong), retry_delay=0)
        note = await note_service.create_note("milk")

        assert await indexer.index_note_background(note.id) is False
        assert await store.get_vector(note.id) is None

    @pytest.mark.asyncio
    async def test_recovers_on_retry(self, store, note_service, indexer, provider):
        note = await note_service.create_note("milk")
        original_embed = provider.embed
        attempts = 0

        async def flaky(text: str) -> list[float]:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise ProviderUnavailableError("blip")
            return await original_embed(text)

        provider.embed = flaky

        assert await indexer.index_note_background(note.id) is True
        assert attempts == 2


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    """Per-note serialization, cross-note parallelism."""

    @pytest.mark.asyncio
    async def test_same_note_is_serialized(self, store, note_service):
        slow = SlowProvider()
        indexer = IndexingService(store, EmbeddingService(slow), retry_delay=0)
        note = await note_service.create_note("milk")

        results = await asyncio.gather(
            *(indexer.index_note_by_id(note.id) for _ in range(3))
        )

        assert results == [True, True, True]
        assert slow.peak == 1
        assert len(await store.list_vectors()) == 1

    @pytest.mark.asyncio
    async def test_different_notes_run_concurrently(self, store, note_service):
        slow = SlowProvider()
        indexer = IndexingService(store, EmbeddingService(slow), retry_delay=0)
        notes = [await note_service.create_note(f"note {i}") for i in range(3)]

        await asyncio.gather(*(indexer.index_note_by_id(n.id) for n in notes))

        assert slow.peak == 3
        assert len(await store.list_vectors()) == 3

    @pytest.mark.asyncio
    async def test_last_edit_wins(self, store, note_service, indexer, provider):
        """Queued re-indexes read the note under the lock, so the latest text is stored."""
        note = await note_service.create_note("milk")
        first = asyncio.create_task(indexer.index_note_by_id(note.id))
        await asyncio.sleep(0)  # first run reads "milk" and starts embedding
        await note_service.update_note(note.id, NoteChanges(content="dentist"))
        second = asyncio.create_task(indexer.index_note_by_id(note.id))

        await asyncio.gather(first, second)

        np.testing.assert_allclose(
            await store.get_vector(note.id), provider.vector_for("dentist")
        )


# ---------------------------------------------------------------------------
# Bulk reindex
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_reindex_only_missing(store, note_service, indexer, provider):
    indexed = await note_service.create_note("milk")
    await indexer.index_note(indexed)
    pending = [await note_service.create_note(f"note {i}") for i in range(2)]
    provider.calls.clear()

    count = await indexer.reindex(only_missing=True)

    assert count == 2
    assert sorted(provider.calls) == sorted(n.content for n in pending)
    assert len(await store.list_vectors()) == 3


@pytest.mark.asyncio
async def test_reindex_all(store, note_service, indexer):
    for i in range(3):
        note = await note_service.create_note(f"note {i}")
        await indexer.index_note(note)

    assert await indexer.reindex(only_missing=False) == 3
    assert len(await store.list_vectors()) == 3

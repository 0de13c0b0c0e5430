"""
Indexing Service

Embeds note content and stores the vector keyed by note id.

Runs outside the HTTP request lifecycle: note creation returns before
indexing starts, and indexing failures are logged, never raised into the
note-creation path. Indexing of one note is serialized by a per-note
lock; different notes index concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import weakref

from stickies.core.config import settings
from stickies.core.exceptions import (
    NoteNotFoundError,
    ProviderLoadFailedError,
    ProviderUnavailableError,
    StoreError,
)
from stickies.models import Note
from stickies.repositories.store import NoteStore
from stickies.services.embeddings import EmbeddingService

logger = logging.getLogger(__name__)


class IndexingService:
    """
    Writes one embedding per note.

    Args:
        store: Note/vector store.
        embedder: Embedding service (timeout + dimension check included).
        max_retries: Attempts for transient failures in background runs.
        retry_delay: Base delay in seconds, multiplied by the attempt number.
    """

    def __init__(
        self,
        store: NoteStore,
        embedder: EmbeddingService,
        *,
        max_retries: int = settings.INDEX_MAX_RETRIES,
        retry_delay: float = settings.INDEX_RETRY_DELAY_SECONDS,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay
        # Entries disappear once no coroutine holds the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, note_id: str) -> asyncio.Lock:
        lock = self._locks.get(note_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[note_id] = lock
        return lock

    async def index_note(self, note: Note) -> None:
        """
        Embed ``note.content`` and upsert the vector.

        Raises:
            EmbeddingProviderError: Provider unavailable or failed to load.
            NoteNotFoundError: The note no longer exists.
            StoreError: The vector could not be written.
        """
        async with self._lock_for(note.id):
            await self._embed_and_store(note)

    async def index_note_by_id(self, note_id: str) -> bool:
        """
        Index the current content of a stored note.

        The note is read after acquiring its lock, so when several edits
        queue up the last writer indexes the latest content.

        Returns:
            False if the note does not exist.
        """
        async with self._lock_for(note_id):
            note = await self._store.get_note(note_id)
            if note is None:
                return False
            await self._embed_and_store(note)
            return True

    async def _embed_and_store(self, note: Note) -> None:
        vector = await self._embedder.embed(note.content)
        await self._store.put_vector(note.id, vector, self._embedder.name)
        logger.info("Embedding stored for note %s", note.id[:8])

    async def index_note_background(self, note_id: str) -> bool:
        """
        Index a note as a background task; never raises.

        Transient failures (provider unavailable, store errors) are retried
        with linear backoff. A provider that failed to load is not retried.

        Returns:
            True if the vector was stored.
        """
        for attempt in range(self._max_retries):
            try:
                if not await self.index_note_by_id(note_id):
                    logger.warning("Note %s not found for embedding processing", note_id)
                    return False
                return True

            except ProviderLoadFailedError as e:
                logger.error("Skipping embedding for note %s: %s", note_id, e)
                return False

            except NoteNotFoundError:
                logger.warning("Note %s was deleted during indexing", note_id)
                return False

            except (ProviderUnavailableError, StoreError) as e:
                logger.error(
                    "Error processing embedding for note %s (attempt %d/%d): %s",
                    note_id,
                    attempt + 1,
                    self._max_retries,
                    e,
                )
                if attempt < self._max_retries - 1:
                    await asyncio.sleep(self._retry_delay * (attempt + 1))
                    continue

            except Exception:
                logger.exception("Unexpected error indexing note %s", note_id)
                return False

        logger.error(
            "Failed to process embedding for note %s after %d attempts",
            note_id,
            self._max_retries,
        )
        return False

    async def reindex(self, only_missing: bool = True) -> int:
        """
        Index every note (or only those without a vector).

        Returns:
            Number of notes indexed successfully.
        """
        notes = await self._store.list_notes()
        if only_missing:
            vectors = await self._store.list_vectors()
            notes = [note for note in notes if note.id not in vectors]

        indexed = 0
        for note in notes:
            if await self.index_note_background(note.id):
                indexed += 1
        logger.info("Reindexed %d/%d notes", indexed, len(notes))
        return indexed

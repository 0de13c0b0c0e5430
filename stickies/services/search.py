"""
Search Service

Ranks notes against a free-text query.

Semantic mode (default):
    The query is embedded once and every note with a stored vector is
    scored by cosine similarity. Notes without a vector are skipped.

Lexical mode (fallback):
    Used when the corpus has no vectors at all or the embedding provider
    fails (unavailable, load failed, timed out). Score is the number of
    distinct query terms found as substrings of the lowercased note
    content divided by the total number of query terms, plus a phrase bonus when the whole query appears verbatim.
    Notes matching no term are dropped.

Both modes sort by score descending. Python's sort is stable, so equal
scores keep corpus order (the store's position order); identical input
always yields identical output.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import NamedTuple

from stickies.core.config import settings
from stickies.core.exceptions import EmbeddingProviderError
from stickies.models import Note, NoteState, SearchMode, SearchResult, VectorLike
from stickies.repositories.store import NoteStore
from stickies.services.embeddings import EmbeddingService
from stickies.services.similarity import cosine_similarity

logger = logging.getLogger(__name__)

Corpus = Sequence[tuple[Note, VectorLike | None]]


class RankedResults(NamedTuple):
    """Ranked results plus the mode that produced them."""

    mode: SearchMode
    results: list[SearchResult]


def lexical_score(query: str, content: str, phrase_bonus: float) -> float:
    """
    Keyword score of ``content`` for ``query``.

    ``matched distinct terms / total query terms`` plus ``phrase_bonus`` when
    the full lowercased query is a substring of the content. Returns 0.0
    when no term matches.
    """
    normalized_query = query.lower().strip()
    words = normalized_query.split()
    if not words:
        return 0.0

    text = content.lower()
    matched = sum(1 for term in dict.fromkeys(words) if term in text)
    if matched == 0:
        return 0.0

    # Repeated words count once when matched but every time in the total
    score = matched / len(words)
    if normalized_query in text:
        score += phrase_bonus
    return score


class SearchRanker:
    """
    Scores and orders a caller-supplied corpus.

    Args:
        embedder: Embedding service for semantic mode. ``None`` forces
            lexical mode.
        phrase_bonus: Added to lexical scores on a verbatim phrase match.
        default_limit: Result count when ``limit`` is not given.
    """

    def __init__(
        self,
        embedder: EmbeddingService | None,
        *,
        phrase_bonus: float = settings.LEXICAL_PHRASE_BONUS,
        default_limit: int = settings.SEARCH_LIMIT,
    ) -> None:
        self._embedder = embedder
        self._phrase_bonus = phrase_bonus
        self._default_limit = default_limit

    async def search(
        self,
        query: str,
        corpus: Corpus,
        limit: int | None = None,
    ) -> RankedResults:
        """
        Rank ``corpus`` against ``query`` and keep the top ``limit``.

        An empty or whitespace-only query returns no results without
        calling the embedding provider.

        Raises:
            ValueError: If ``limit`` is negative.
            InvalidDimensionError: If stored vectors do not match the
                query vector's length (vectors from another model).
        """
        limit = self._default_limit if limit is None else limit
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        if not query.strip():
            return RankedResults(SearchMode.LEXICAL, [])

        has_vectors = any(vector is not None for _, vector in corpus)
        if self._embedder is not None and has_vectors:
            try:
                query_vector = await self._embedder.embed(query)
            except EmbeddingProviderError as e:
                logger.warning("Semantic search unavailable, using lexical: %s", e)
            else:
                scored = [
                    SearchResult(note=note, score=cosine_similarity(query_vector, vector))
                    for note, vector in corpus
                    if vector is not None
                ]
                return RankedResults(SearchMode.SEMANTIC, self._top(scored, limit))

        scored = []
        for note, _ in corpus:
            score = lexical_score(query, note.content, self._phrase_bonus)
            if score > 0.0:
                scored.append(SearchResult(note=note, score=score))
        return RankedResults(SearchMode.LEXICAL, self._top(scored, limit))

    async def related(
        self,
        text: str,
        corpus: Corpus,
        *,
        exclude_note_id: str | None = None,
        max_results: int = 3,
        min_query_length: int = 3,
        archived_threshold: float = 0.8,
    ) -> RankedResults:
        """
        Notes related to a draft ``text`` (the "related notes" panel).

        Archived notes are shown only when their score is above
        ``archived_threshold``. ``exclude_note_id`` drops the note being
        edited from its own suggestions.
        """
        if len(text.strip()) < min_query_length:
            return RankedResults(SearchMode.LEXICAL, [])

        candidates = [(note, vector) for note, vector in corpus if note.id != exclude_note_id]
        ranked = await self.search(text, candidates, limit=len(candidates))
        filtered = [
            result
            for result in ranked.results
            if result.note.state != NoteState.ARCHIVED or result.score > archived_threshold
        ]
        return RankedResults(ranked.mode, filtered[:max_results])

    @staticmethod
    def _top(scored: list[SearchResult], limit: int) -> list[SearchResult]:
        # Stable: equal scores keep corpus order
        return sorted(scored, key=lambda r: r.score, reverse=True)[:limit]


class NoteSearchService:
    """
    Search over the note store.

    Builds the corpus (every note in position order, paired with its
    vector or None) from a single snapshot and hands it to the ranker.

    Usage::

        service = NoteSearchService(store, SearchRanker(get_embedding_service()))
        ranked = await service.search("food shopping")
    """

    def __init__(self, store: NoteStore, ranker: SearchRanker) -> None:
        self._store = store
        self._ranker = ranker

    async def _corpus(
        self, state: NoteState | None = None
    ) -> list[tuple[Note, VectorLike | None]]:
        notes = await self._store.list_notes(state)
        vectors = await self._store.list_vectors()
        return [(note, vectors.get(note.id)) for note in notes]

    async def search(
        self,
        query: str,
        limit: int | None = None,
        state: NoteState | None = None,
    ) -> RankedResults:
        """Search all notes (or one state) for ``query``."""
        if not query.strip():
            return RankedResults(SearchMode.LEXICAL, [])
        ranked = await self._ranker.search(query, await self._corpus(state), limit)
        logger.info(
            "Search '%s': %d results (%s)",
            query[:50],
            len(ranked.results),
            ranked.mode,
        )
        return ranked

    async def related(
        self,
        text: str,
        exclude_note_id: str | None = None,
        max_results: int = 3,
    ) -> RankedResults:
        """Related-notes suggestions for a draft text."""
        return await self._ranker.related(
            text,
            await self._corpus(),
            exclude_note_id=exclude_note_id,
            max_results=max_results,
        )

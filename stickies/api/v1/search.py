"""
Search API Router

Semantic note search with automatic lexical fallback, and related-note
suggestions for a draft being typed.
"""

import logging

from fastapi import APIRouter, Depends

from stickies.api.v1.deps import get_search_service
from stickies.schemas.notes import NoteRead
from stickies.schemas.search import (
    RelatedRequest,
    SearchHit,
    SearchRequest,
    SearchResponse,
)
from stickies.services.search import NoteSearchService, RankedResults

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(ranked: RankedResults) -> SearchResponse:
    return SearchResponse(
        mode=ranked.mode,
        results=[
            SearchHit(note=NoteRead.model_validate(r.note), score=r.score)
            for r in ranked.results
        ],
    )


@router.post("/", response_model=SearchResponse)
async def search_notes(
    request: SearchRequest,
    service: NoteSearchService = Depends(get_search_service),
) -> SearchResponse:
    """
    Search notes by meaning.

    Embeds the query and ranks notes by cosine similarity of their stored
    embeddings. If the embedding provider is unavailable (or no note is
    indexed yet) the ranking falls back to keyword matching and the
    response reports ``mode="lexical"``; the request does not fail.
    """
    ranked = await service.search(request.query, request.limit, request.state)
    return _to_response(ranked)


@router.post("/related", response_model=SearchResponse)
async def related_notes(
    request: RelatedRequest,
    service: NoteSearchService = Depends(get_search_service),
) -> SearchResponse:
    """
    Notes related to a draft text.

    Short drafts (under 3 characters) return nothing. Archived notes are
    included only when highly relevant.
    """
    ranked = await service.related(
        request.text,
        exclude_note_id=request.note_id,
        max_results=request.limit,
    )
    return _to_response(ranked)

"""
Search Schemas

Pydantic models for the search and related-notes endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from stickies.models import NoteState, SearchMode
from stickies.schemas.notes import NoteRead


class SearchRequest(BaseModel):
    """Request body for note search."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Natural language search query",
    )
    limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of results to return",
    )
    state: NoteState | None = Field(
        default=None,
        description="Restrict the search to one lifecycle state",
    )


class RelatedRequest(BaseModel):
    """Request body for related-note suggestions while typing."""

    text: str = Field(..., max_length=10_000, description="Draft note text")
    note_id: str | None = Field(
        default=None,
        description="Note being edited (excluded from suggestions)",
    )
    limit: int = Field(default=3, ge=1, le=20)


class SearchHit(BaseModel):
    """Single search result returned to the client."""

    note: NoteRead
    score: float = Field(description="Relevance score (higher = more relevant)")


class SearchResponse(BaseModel):
    """Ranked results and the scoring mode used."""

    mode: SearchMode = Field(
        description="'semantic' (cosine similarity) or 'lexical' (keyword fallback)",
    )
    results: list[SearchHit] = Field(default_factory=list)

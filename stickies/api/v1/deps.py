"""
API Dependencies

FastAPI dependency providers shared by the v1 routers. The store and the
embedding service are process-wide singletons; the services on top of
them are cheap and built per request, except the indexing service, whose
per-note locks only work if every request shares one instance. Tests swap
the singletons through ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from stickies.repositories.store import NoteStore, get_note_store
from stickies.services.clustering import ClusteringService
from stickies.services.embeddings import EmbeddingService, get_embedding_service
from stickies.services.indexing import IndexingService
from stickies.services.notes import NoteService
from stickies.services.search import NoteSearchService, SearchRanker


@lru_cache(maxsize=8)
def _shared_indexer(store: NoteStore, embedder: EmbeddingService) -> IndexingService:
    return IndexingService(store, embedder)


def get_note_service(store: NoteStore = Depends(get_note_store)) -> NoteService:
    return NoteService(store)


def get_indexing_service(
    store: NoteStore = Depends(get_note_store),
    embedder: EmbeddingService = Depends(get_embedding_service),
) -> IndexingService:
    return _shared_indexer(store, embedder)


def get_search_service(
    store: NoteStore = Depends(get_note_store),
    embedder: EmbeddingService = Depends(get_embedding_service),
) -> NoteSearchService:
    return NoteSearchService(store, SearchRanker(embedder))


def get_clustering_service(
    store: NoteStore = Depends(get_note_store),
) -> ClusteringService:
    return ClusteringService(store)

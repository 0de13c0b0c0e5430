"""
Pytest Configuration and Fixtures

Shared fixtures for the offline unit tests (in-memory store, fake
embedding provider) and for the integration tests, which require a
running Docker stack and are deselected by default (``-m integration``).
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults — MUST be before any stickies imports.
#
# 1. Load .env first so that Docker-matching credentials are available.
# 2. setdefault fills in anything still missing (CI runners, fresh clones
#    without a .env file) so that pydantic Settings validation doesn't crash.
#    Unit tests never touch Postgres or download a model.
# ---------------------------------------------------------------------------
load_dotenv()  # .env → os.environ (no-op if file is missing)

_test_env = {
    "POSTGRES_USER": "stickies",
    "POSTGRES_PASSWORD": "stickies_password",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "stickies_db",
    "STORE_BACKEND": "memory",
    "EMBEDDING_BACKEND": "mock",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
import random  # noqa: E402
import time  # noqa: E402
import uuid  # noqa: E402
from collections.abc import Generator  # noqa: E402
from datetime import timedelta  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from stickies.models import Note, NoteState  # noqa: E402
from stickies.models.base import utcnow  # noqa: E402
from stickies.repositories.memory import InMemoryNoteStore  # noqa: E402
from stickies.services.embeddings import EmbeddingService  # noqa: E402
from stickies.services.indexing import IndexingService  # noqa: E402
from stickies.services.notes import NoteService  # noqa: E402

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Fake embedding provider
# ---------------------------------------------------------------------------

# Each concept owns one axis; words outside every concept contribute nothing
CONCEPTS: dict[str, set[str]] = {
    "food": {"groceries", "grocery", "milk", "eggs", "bread", "food", "shopping"},
    "health": {"dentist", "appointment", "doctor", "teeth"},
    "errands": {"pick", "dry", "cleaning", "laundry"},
    "work": {"quarterly", "report", "team", "meeting", "finance"},
}
FAKE_DIMENSION = 8


class ConceptProvider:
    """
    Deterministic provider mapping words to concept axes.

    "food shopping" lands on the same axis as "Buy groceries: milk, eggs"
    without sharing a word with it, which is what semantic search needs
    to be told apart from keyword matching in tests.
    """

    def __init__(self, dimension: int = FAKE_DIMENSION) -> None:
        self.name = "concept-fake"
        self.dimension = dimension
        self.calls: list[str] = []
        self.error: Exception | None = None

    def vector_for(self, text: str) -> list[float]:
        vector = [0.0] * self.dimension
        words = "".join(c if c.isalnum() else " " for c in text.lower()).split()
        for axis, vocabulary in enumerate(CONCEPTS.values()):
            vector[axis] = float(sum(1 for word in words if word in vocabulary))
        return vector

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.vector_for(text)


def _make_note(
    content: str,
    *,
    note_id: str | None = None,
    state: NoteState = NoteState.INBOX,
    position: int = 0,
    age: timedelta = timedelta(0),
) -> Note:
    """Build a Note value directly (no store involved)."""
    moment = utcnow() - age
    return Note(
        id=note_id or str(uuid.uuid4()),
        content=content,
        state=state,
        position=position,
        created_at=moment,
        updated_at=moment,
    )


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def make_note():
    """Factory building Note values without a store."""
    return _make_note



@pytest.fixture
def store() -> InMemoryNoteStore:
    """Empty in-memory store accepting FAKE_DIMENSION vectors."""
    return InMemoryNoteStore(dimension=FAKE_DIMENSION)


@pytest.fixture
def provider() -> ConceptProvider:
    """Fresh fake provider with call tracking."""
    return ConceptProvider()


@pytest.fixture
def embedder(provider: ConceptProvider) -> EmbeddingService:
    """Embedding service over the fake provider (short timeout)."""
    return EmbeddingService(provider, timeout=1.0)


@pytest.fixture
def note_service(store: InMemoryNoteStore) -> NoteService:
    """Note service with a seeded random source."""
    return NoteService(store, rng=random.Random(0))


@pytest.fixture
def indexer(store: InMemoryNoteStore, embedder: EmbeddingService) -> IndexingService:
    """Indexing service without retry delays."""
    return IndexingService(store, embedder, max_retries=2, retry_delay=0)


# ---------------------------------------------------------------------------
# Integration fixtures (Docker stack)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def wait_for_api():
    """
    Block until the API is ready or timeout expires.

    Polls /health endpoint with 1s intervals for up to 30s.
    Fails the test session if API is unreachable (Docker likely not running).
    """
    url = f"{BASE_URL}/health"
    timeout = 30
    start = time.time()

    print("\n[Test] Waiting for API...")
    while time.time() - start < timeout:
        try:
            res = httpx.get(url, timeout=1.0)
            if res.status_code == 200:
                print("API Ready")
                return
        except httpx.RequestError:
            time.sleep(1)

    pytest.fail("API unreachable. Docker is likely down.")


@pytest.fixture(scope="session")
def api_client(wait_for_api) -> Generator[httpx.Client, None, None]:
    """
    Pre-configured HTTP client for integration tests.

    Base URL points to /api/v1 for cleaner test assertions.
    """
    with httpx.Client(base_url=f"{BASE_URL}/api/v1", timeout=10.0) as client:
        yield client

"""
Async Embedding Integration Tests

Verifies that background embedding generation works end-to-end and that
editing a note replaces its embedding rather
than adding one, and that deleting a note removes it.
Requires Docker stack running (make up) with API and database accessible.
"""

import asyncio
import os
import uuid

import asyncpg
import httpx
import pytest

pytestmark = pytest.mark.integration

BASE_URL = "http://localhost:8000/api/v1/notes"


def _build_test_dsn() -> str:
    """Build PostgreSQL DSN from environment variables with fallback defaults."""
    return (
        f"postgresql://{os.getenv('POSTGRES_USER', 'stickies')}:"
        f"{os.getenv('POSTGRES_PASSWORD', 'stickies_password')}@"
        f"{os.getenv('POSTGRES_HOST', 'localhost')}:"
        f"{os.getenv('POSTGRES_PORT', '5432')}/"
        f"{os.getenv('POSTGRES_DB', 'stickies_db')}"
    )


async def _embedding_count(conn: asyncpg.Connection, note_id: str) -> int:
    return await conn.fetchval(
        "SELECT count(*) FROM embeddings WHERE note_id = $1", note_id
    )


async def _stored_vector(conn: asyncpg.Connection, note_id: str) -> str | None:
    return await conn.fetchval(
        "SELECT vector::text FROM embeddings WHERE note_id = $1", note_id
    )


@pytest.mark.asyncio
async def test_create_note_triggers_embedding(wait_for_api):
    """
    Verify that creating a note triggers async embedding generation.

    Test strategy:
        1. Create note via HTTP API
        2. Poll database directly until exactly one embedding row exists
        3. PATCH the content and poll until the stored vector changes; the
           upsert must leave a single row
        4. Delete the note and check the embedding row is gone (FK cascade)
    """
    content = f"Async test note {uuid.uuid4()}"  # Avoid collisions between runs

    async with httpx.AsyncClient() as client:
        response = await client.post(f"{BASE_URL}/", json={"content": content})
        assert response.status_code == 201, response.text
        note_id = response.json()["id"]

    # Polling config: 20 * 0.5s = 10s max wait for background task
    max_retries = 20
    poll_interval_s = 0.5

    dsn = (
        os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL") or _build_test_dsn()
    )
    # asyncpg requires standard postgresql:// scheme (not SQLAlchemy's +asyncpg)
    dsn = dsn.replace("postgresql+asyncpg://", "postgresql://")

    found = False
    conn = None

    try:
        conn = await asyncpg.connect(dsn)

        for _attempt in range(max_retries):
            await asyncio.sleep(poll_interval_s)
            if await _embedding_count(conn, note_id) == 1:
                found = True
                break

        assert found, (
            f"Note {note_id} embedding was not generated after "
            f"{max_retries * poll_interval_s}s"
        )

        # Editing the content re-embeds in place: new vector, still one row
        before = await _stored_vector(conn, note_id)
        async with httpx.AsyncClient() as client:
            response = await client.patch(
                f"{BASE_URL}/{note_id}",
                json={"content": f"Rewritten about dentist appointments {uuid.uuid4()}"},
            )
            assert response.status_code == 200, response.text

        replaced = False
        for _attempt in range(max_retries):
            await asyncio.sleep(poll_interval_s)
            if await _stored_vector(conn, note_id) != before:
                replaced = True
                break

        assert replaced, f"Note {note_id} embedding was not refreshed after the edit"
        assert await _embedding_count(conn, note_id) == 1

        async with httpx.AsyncClient() as client:
            response = await client.delete(f"{BASE_URL}/{note_id}")
            assert response.status_code == 204

        assert await _embedding_count(conn, note_id) == 0

    finally:
        if conn:
            await conn.close()

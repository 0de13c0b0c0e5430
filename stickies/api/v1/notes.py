"""
Notes API Router

REST endpoints for note capture, editing and the inbox lifecycle.

Embedding generation is offloaded to background tasks: a note is
returned immediately and becomes searchable semantically once its
vector is stored. Errors from the service layer (NoteNotFoundError,
StoreError, ValueError) are mapped to HTTP responses by the handlers
registered in ``stickies.main``.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status

from stickies.api.v1.deps import get_indexing_service, get_note_service
from stickies.models import NoteChanges, NoteState
from stickies.schemas.notes import (
    InboxCount,
    NoteCreate,
    NoteRead,
    NoteUpdate,
    ReorderRequest,
    SnoozeRequest,
)
from stickies.services.indexing import IndexingService
from stickies.services.notes import NoteService

router = APIRouter()


@router.post("/", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def create_note(
    note_in: NoteCreate,
    background_tasks: BackgroundTasks,
    service: NoteService = Depends(get_note_service),
    indexer: IndexingService = Depends(get_indexing_service),
):
    """
    Capture a new note into the inbox.

    The note is usable right away but appears in semantic search only
    after the background embedding task completes. Indexing failures are
    logged and never affect this response.
    """
    note = await service.create_note(
        note_in.content,
        source=note_in.source,
        raw_transcript=note_in.raw_transcript,
        color=note_in.color,
    )
    background_tasks.add_task(indexer.index_note_background, note.id)
    return note


@router.get("/", response_model=list[NoteRead])
async def list_notes(
    state: NoteState | None = None,
    service: NoteService = Depends(get_note_service),
):
    """List notes in manual order, optionally filtered by state."""
    return await service.list_notes(state)


@router.get("/inbox/count", response_model=InboxCount)
async def inbox_count(service: NoteService = Depends(get_note_service)):
    """Number of notes waiting in the inbox."""
    return InboxCount(count=await service.inbox_count())


@router.get("/rediscover", response_model=NoteRead | None)
async def rediscover(service: NoteService = Depends(get_note_service)):
    """A random archived note worth resurfacing (null when none qualifies)."""
    return await service.rediscovery_candidate()


@router.post("/process-snoozed", response_model=list[NoteRead])
async def process_snoozed(service: NoteService = Depends(get_note_service)):
    """Return every due snoozed note to the inbox."""
    return await service.process_snoozed()


@router.post("/reorder", status_code=status.HTTP_204_NO_CONTENT)
async def reorder_notes(
    request: ReorderRequest,
    service: NoteService = Depends(get_note_service),
):
    """Persist a drag-and-drop order (first id = top)."""
    await service.reorder(request.note_ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{note_id}", response_model=NoteRead)
async def read_note(note_id: str, service: NoteService = Depends(get_note_service)):
    """Retrieve a single note by ID."""
    return await service.get_note(note_id)


@router.patch("/{note_id}", response_model=NoteRead)
async def update_note(
    note_id: str,
    note_in: NoteUpdate,
    background_tasks: BackgroundTasks,
    service: NoteService = Depends(get_note_service),
    indexer: IndexingService = Depends(get_indexing_service),
):
    """Edit a note. A content change re-indexes it in the background."""
    changes = NoteChanges(**note_in.model_dump(exclude_unset=True))
    note = await service.update_note(note_id, changes)
    if "content" in note_in.model_fields_set:
        background_tasks.add_task(indexer.index_note_background, note.id)
    return note


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: str, service: NoteService = Depends(get_note_service)):
    """Delete a note and its embedding."""
    await service.delete_note(note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{note_id}/archive", response_model=NoteRead)
async def archive_note(note_id: str, service: NoteService = Depends(get_note_service)):
    return await service.archive(note_id)


@router.post("/{note_id}/activate", response_model=NoteRead)
async def activate_note(note_id: str, service: NoteService = Depends(get_note_service)):
    return await service.activate(note_id)


@router.post("/{note_id}/unsnooze", response_model=NoteRead)
async def unsnooze_note(note_id: str, service: NoteService = Depends(get_note_service)):
    return await service.unsnooze(note_id)


@router.post("/{note_id}/snooze", response_model=NoteRead)
async def snooze_note(
    note_id: str,
    request: SnoozeRequest,
    service: NoteService = Depends(get_note_service),
):
    """Hide a note from the inbox until the given time."""
    return await service.snooze(note_id, request.until)


@router.post("/{note_id}/surfaced", response_model=NoteRead)
async def mark_surfaced(note_id: str, service: NoteService = Depends(get_note_service)):
    """Record that a rediscovered note was shown to the user."""
    return await service.mark_surfaced(note_id)

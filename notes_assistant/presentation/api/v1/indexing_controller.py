"""Indexing API controller — source feed, index runs and progress events."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response
from fastapi.responses import StreamingResponse

from notes_assistant.application.interfaces import SourceFeed
from notes_assistant.application.schemas.indexing import (
    IndexingStatusResponse,
    IndexOneResponse,
    SourceResponse,
    SourceUpsertRequest,
)
from notes_assistant.application.services import IndexingRegistry, SSEManager
from notes_assistant.domain.entities import PageText, Source, SourceType
from notes_assistant.domain.exceptions import (
    ChatProviderError,
    EmbeddingDimensionError,
    EmbeddingInitializationError,
    EntityNotFoundError,
    IndexingError,
)
from notes_assistant.infrastructure.dependencies import (
    get_indexing_registry,
    get_source_feed,
    get_sse_manager,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["indexing"])


# ── Helpers ──────────────────────────────────────────────────────────


def _to_source(owner_id: str, body: SourceUpsertRequest) -> Source:
    updated_at = body.updated_at or datetime.now(timezone.utc)
    if body.source_type == SourceType.DOCUMENT:
        return Source.document(
            owner_id=owner_id,
            source_id=body.source_id,
            file_name=body.file_name or body.title or body.source_id,
            pages=[PageText(page_number=p.page_number, text=p.text) for p in body.pages],
            updated_at=updated_at,
        )
    return Source.note(
        owner_id=owner_id,
        source_id=body.source_id,
        title=body.title or "Untitled",
        content=body.content,
        updated_at=updated_at,
    )


# ── Source feed ──────────────────────────────────────────────────────


@router.put("/owners/{owner_id}/sources", response_model=SourceResponse)
async def upsert_source(
    owner_id: str,
    body: SourceUpsertRequest,
    feed: SourceFeed = Depends(get_source_feed),
    registry: IndexingRegistry = Depends(get_indexing_registry),
):
    """Store a note/document and re-index it in the background once ready."""
    source = _to_source(owner_id, body)
    await feed.upsert_source(source)
    scheduled = registry.get(owner_id).schedule_incremental() is not None
    return SourceResponse(
        owner_id=owner_id,
        source_id=source.source_id,
        source_type=source.source_type,
        title=source.title,
        updated_at=source.updated_at,
        incremental_scheduled=scheduled,
    )


@router.delete("/owners/{owner_id}/sources/{source_id}", status_code=204)
async def delete_source(
    owner_id: str,
    source_id: str,
    feed: SourceFeed = Depends(get_source_feed),
    registry: IndexingRegistry = Depends(get_indexing_registry),
):
    """Forget a source and delete its chunks."""
    removed = await feed.remove_source(owner_id, source_id)
    deleted = await registry.get(owner_id).remove_source(source_id)
    if not removed and deleted == 0:
        raise HTTPException(status_code=404, detail=f"Source '{source_id}' not found")
    return Response(status_code=204)


# ── Indexing ─────────────────────────────────────────────────────────


@router.post(
    "/owners/{owner_id}/index",
    response_model=IndexingStatusResponse,
    status_code=202,
)
async def start_indexing(
    owner_id: str,
    background_tasks: BackgroundTasks,
    registry: IndexingRegistry = Depends(get_indexing_registry),
):
    """Start a full indexing run; poll the status or subscribe to events."""
    orchestrator = registry.get(owner_id)
    if not orchestrator.is_running:
        background_tasks.add_task(orchestrator.index_all_notes)
    return orchestrator.snapshot()


@router.post("/owners/{owner_id}/index/{source_id}", response_model=IndexOneResponse)
async def index_one(
    owner_id: str,
    source_id: str,
    registry: IndexingRegistry = Depends(get_indexing_registry),
):
    """Re-index a single source immediately."""
    try:
        count = await registry.get(owner_id).index_by_id(source_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except IndexingError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except (EmbeddingInitializationError, EmbeddingDimensionError, ChatProviderError) as e:
        logger.error("Indexing %s failed: %s", source_id, e)
        raise HTTPException(status_code=503, detail=str(e))
    return IndexOneResponse(owner_id=owner_id, source_id=source_id, chunk_count=count)


@router.get("/owners/{owner_id}/index/status", response_model=IndexingStatusResponse)
async def indexing_status(
    owner_id: str,
    registry: IndexingRegistry = Depends(get_indexing_registry),
):
    return registry.get(owner_id).snapshot()


# ── SSE Stream ───────────────────────────────────────────────────────


@router.get("/index/events")
async def indexing_events(
    owner_id: str | None = None,
    sse: SSEManager = Depends(get_sse_manager),
) -> StreamingResponse:
    """SSE endpoint for indexing progress.

    Clients connect via EventSource and receive ``indexing`` events carrying
    the same payload as the status endpoint.
    """
    return StreamingResponse(
        sse.subscribe(owner_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )

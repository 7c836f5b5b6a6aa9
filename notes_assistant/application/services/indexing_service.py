"""Indexing service — full and incremental indexing of an owner's sources.

Each orchestrator owns the run state for one owner:

    idle → downloading_model → indexing → ready
                  └───────────────┴──→ error

A full run is guarded by an encapsulated running flag: a second call while a
run is in flight is a no-op. Incremental runs only start from ``ready`` and
never overlap a full run or each other.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from notes_assistant.application.interfaces.embedding_provider import EmbeddingProvider
from notes_assistant.application.interfaces.source_feed import SourceFeed
from notes_assistant.application.interfaces.vector_store import VectorStore
from notes_assistant.application.services.chunking_service import Chunker
from notes_assistant.application.services.sse_manager import SSEManager
from notes_assistant.domain.entities import (
    IndexingProgress,
    IndexingStatus,
    Source,
)
from notes_assistant.domain.exceptions import (
    EmbeddingDimensionError,
    EntityNotFoundError,
    IndexingError,
)

logger = logging.getLogger(__name__)

INDEXING_EVENT = "indexing"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class IndexingOrchestrator:
    """Drives the write path (chunk → embed → store) for one owner."""

    def __init__(
        self,
        owner_id: str,
        feed: SourceFeed,
        chunker: Chunker,
        embedder: EmbeddingProvider,
        vector_store: VectorStore,
        event_sink: SSEManager | None = None,
    ):
        self.owner_id = owner_id
        self._feed = feed
        self._chunker = chunker
        self._embedder = embedder
        self._store = vector_store
        self._events = event_sink

        self._status = IndexingStatus.IDLE
        self._progress = IndexingProgress()
        self._error: str | None = None
        self._running = False
        self._last_indexed: dict[str, datetime] = {}
        self._incremental_task: asyncio.Task | None = None

    # ── State ────────────────────────────────────────────────────────

    @property
    def status(self) -> IndexingStatus:
        return self._status

    @property
    def progress(self) -> IndexingProgress:
        return self._progress

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_running(self) -> bool:
        return self._running

    def last_indexed_at(self, source_id: str) -> datetime | None:
        return self._last_indexed.get(source_id)

    def snapshot(self) -> dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "status": self._status.value,
            "progress": self._progress.to_dict(),
            "error": self._error,
        }

    # ── Full run ─────────────────────────────────────────────────────

    async def index_all_notes(self) -> IndexingProgress:
        """Initialize the embedder, then index every source sequentially.

        A source failing with ``IndexingError`` is recorded in
        ``progress.failed_sources`` and the run continues. Any other exception
        aborts the run into ``error``; sources indexed before it stay indexed.
        """
        if self._running:
            logger.info("Indexing already running for owner=%s, ignoring", self.owner_id)
            return self._progress

        self._running = True
        try:
            self._error = None
            self._status = IndexingStatus.DOWNLOADING_MODEL
            self._progress.mark_downloading(0.0)
            await self._publish()

            await self._embedder.initialize(on_progress=self._on_download_progress)

            sources = await self._feed.list_sources(self.owner_id)
            self._status = IndexingStatus.INDEXING
            self._progress.mark_indexing(len(sources))
            await self._publish()
            logger.info("Indexing %d sources for owner=%s", len(sources), self.owner_id)

            for position, source in enumerate(sources, start=1):
                try:
                    await self._index_source(source)
                except IndexingError as e:
                    logger.warning("Skipping source %s: %s", source.source_id, e.message)
                    self._progress.failed_sources.append(source.source_id)
                self._progress.mark_indexed(position)
                await self._publish()

            self._status = IndexingStatus.READY
            self._progress.mark_ready()
            logger.info(
                "Indexing finished for owner=%s: %d sources, %d failed",
                self.owner_id,
                len(sources),
                len(self._progress.failed_sources),
            )
        except Exception as e:
            logger.exception("Indexing run failed for owner=%s", self.owner_id)
            self._status = IndexingStatus.ERROR
            self._error = str(e)
            self._progress.mark_failed(str(e))
        finally:
            self._running = False

        await self._publish()
        # Sources edited while the run was in progress were listed too early
        if self._status == IndexingStatus.READY and await self.stale_sources():
            self.schedule_incremental()
        return self._progress

    # ── Single source ────────────────────────────────────────────────

    async def index_one(self, source: Source) -> int:
        """Re-index one source and return the number of chunks stored.

        Raises:
            IndexingError: If a document produced no text at all.
        """
        if source.owner_id != self.owner_id:
            raise ValueError(
                f"Source {source.source_id} belongs to owner {source.owner_id}, not {self.owner_id}"
            )
        count = await self._index_source(source)
        await self._publish()
        return count

    async def index_by_id(self, source_id: str) -> int:
        """Fetch a source from the feed and re-index it."""
        source = await self._feed.get_source(self.owner_id, source_id)
        if source is None:
            raise EntityNotFoundError("Source", source_id)
        return await self.index_one(source)

    async def _index_source(self, source: Source) -> int:
        chunks = self._chunker.chunk(source)

        if not chunks:
            await self._store.delete_by_source(self.owner_id, source.source_id)
            self._last_indexed[source.source_id] = _as_utc(source.updated_at)
            if source.is_document:
                raise IndexingError(
                    source.source_id, "No text could be extracted from this document"
                )
            logger.debug("Source %s is empty, nothing to index", source.source_id)
            return 0

        # One chunk at a time keeps peak memory and CPU bounded
        for chunk in chunks:
            vector = await self._embedder.embed(chunk.content)
            if len(vector) != self._embedder.dimensions:
                raise EmbeddingDimensionError(self._embedder.dimensions, len(vector))
            chunk.vector = vector

        # Delete and insert share one transaction: readers see old or new, never both
        await self._store.replace_source(self.owner_id, source.source_id, chunks)
        self._last_indexed[source.source_id] = _as_utc(source.updated_at)

        logger.debug(
            "Indexed source %s (%s): %d chunks",
            source.source_id,
            source.source_type.value,
            len(chunks),
        )
        return len(chunks)

    # ── Incremental ──────────────────────────────────────────────────

    async def stale_sources(self) -> list[Source]:
        """Sources never indexed, or modified since they were last indexed."""
        stale: list[Source] = []
        for source in await self._feed.list_sources(self.owner_id):
            last = self._last_indexed.get(source.source_id)
            if last is None or _as_utc(source.updated_at) > last:
                stale.append(source)
        return stale

    async def index_stale(self) -> int:
        """Re-index stale sources; failures are logged and skipped.

        Only runs from ``ready`` and never alongside another run. Returns the
        number of sources successfully re-indexed.
        """
        if self._status != IndexingStatus.READY or self._running:
            return 0

        self._running = True
        indexed = 0
        try:
            stale = await self.stale_sources()
            for source in stale:
                try:
                    await self._index_source(source)
                    indexed += 1
                except Exception:
                    logger.warning(
                        "Incremental indexing of %s failed",
                        source.source_id,
                        exc_info=True,
                    )
            if stale:
                logger.info(
                    "Incremental indexing for owner=%s: %d/%d sources updated",
                    self.owner_id,
                    indexed,
                    len(stale),
                )
        finally:
            self._running = False

        if indexed:
            await self._publish()
        return indexed

    def schedule_incremental(self) -> asyncio.Task | None:
        """Fire-and-forget ``index_stale`` when the index is ready and idle."""
        if self._status != IndexingStatus.READY or self._running:
            return None
        if self._incremental_task and not self._incremental_task.done():
            return self._incremental_task
        self._incremental_task = asyncio.create_task(self.index_stale())
        return self._incremental_task

    async def remove_source(self, source_id: str) -> int:
        """Delete a source's chunks and forget when it was indexed."""
        deleted = await self._store.delete_by_source(self.owner_id, source_id)
        self._last_indexed.pop(source_id, None)
        logger.info("Removed %d chunks of source %s", deleted, source_id)
        return deleted

    # ── Events ───────────────────────────────────────────────────────

    def _on_download_progress(self, ratio: float) -> None:
        self._progress.mark_downloading(ratio)

    async def _publish(self) -> None:
        if self._events is not None:
            await self._events.broadcast(INDEXING_EVENT, self.snapshot())


class IndexingRegistry:
    """Keeps one orchestrator per owner, sharing the process-wide components."""

    def __init__(
        self,
        feed: SourceFeed,
        chunker: Chunker,
        embedder: EmbeddingProvider,
        vector_store: VectorStore,
        event_sink: SSEManager | None = None,
    ):
        self._feed = feed
        self._chunker = chunker
        self._embedder = embedder
        self._store = vector_store
        self._events = event_sink
        self._orchestrators: dict[str, IndexingOrchestrator] = {}

    def get(self, owner_id: str) -> IndexingOrchestrator:
        orchestrator = self._orchestrators.get(owner_id)
        if orchestrator is None:
            orchestrator = IndexingOrchestrator(
                owner_id,
                self._feed,
                self._chunker,
                self._embedder,
                self._store,
                event_sink=self._events,
            )
            self._orchestrators[owner_id] = orchestrator
        return orchestrator

    def owners(self) -> list[str]:
        return list(self._orchestrators)

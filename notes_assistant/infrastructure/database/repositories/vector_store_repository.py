"""SQLAlchemy implementation of VectorStore — chunks with JSON vectors."""

import logging
from datetime import timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notes_assistant.application.interfaces.vector_store import VectorStore
from notes_assistant.domain.entities import Chunk, SourceType
from notes_assistant.infrastructure.database.models.chunk_models import KnowledgeChunkModel

logger = logging.getLogger(__name__)


class SQLAlchemyVectorStore(VectorStore):
    """Concrete vector store; every operation runs in its own transaction.

    The store is process-scoped and shared by indexing (writer) and
    questions (reader), so it owns a session factory rather than a session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def upsert(self, chunks: list[Chunk]) -> None:
        if not chunks:
            return
        async with self._session_factory.begin() as session:
            for chunk in chunks:
                # merge() is last-write-wins on the (owner_id, chunk_id) primary key
                await session.merge(self._to_model(chunk))
        logger.debug("Upserted %d chunks", len(chunks))

    async def delete_by_source(self, owner_id: str, source_id: str) -> int:
        async with self._session_factory.begin() as session:
            count = await self._delete_source(session, owner_id, source_id)
        if count > 0:
            logger.info("Deleted %d chunks for source %s", count, source_id)
        return count

    async def replace_source(
        self, owner_id: str, source_id: str, chunks: list[Chunk]
    ) -> None:
        async with self._session_factory.begin() as session:
            removed = await self._delete_source(session, owner_id, source_id)
            # Flush the delete first so re-used chunk ids don't collide
            await session.flush()
            session.add_all(self._to_model(chunk) for chunk in chunks)
        logger.info(
            "Replaced chunks for source %s: %d removed, %d stored",
            source_id,
            removed,
            len(chunks),
        )

    async def get_all_for_owner(self, owner_id: str) -> list[Chunk]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(KnowledgeChunkModel)
                .where(KnowledgeChunkModel.owner_id == owner_id)
                .order_by(KnowledgeChunkModel.source_id, KnowledgeChunkModel.chunk_index)
            )
            return [self._to_entity(m) for m in result.scalars().all()]

    async def count_for_source(self, owner_id: str, source_id: str) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(KnowledgeChunkModel)
                .where(
                    KnowledgeChunkModel.owner_id == owner_id,
                    KnowledgeChunkModel.source_id == source_id,
                )
            )
            return int(result.scalar_one())

    # ── Private helpers ──────────────────────────────────────────────

    @staticmethod
    async def _delete_source(session: AsyncSession, owner_id: str, source_id: str) -> int:
        result = await session.execute(
            delete(KnowledgeChunkModel).where(
                KnowledgeChunkModel.owner_id == owner_id,
                KnowledgeChunkModel.source_id == source_id,
            )
        )
        return result.rowcount or 0

    @staticmethod
    def _to_model(chunk: Chunk) -> KnowledgeChunkModel:
        return KnowledgeChunkModel(
            chunk_id=chunk.chunk_id,
            owner_id=chunk.owner_id,
            source_id=chunk.source_id,
            source_type=chunk.source_type.value,
            source_title=chunk.source_title,
            chunk_index=chunk.chunk_index,
            content=chunk.content,
            page_number=chunk.page_number,
            vector=[float(v) for v in chunk.vector],
            updated_at=chunk.updated_at,
        )

    @staticmethod
    def _to_entity(model: KnowledgeChunkModel) -> Chunk:
        updated_at = model.updated_at
        # SQLite hands back naive datetimes
        if updated_at is not None and updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        return Chunk(
            chunk_id=model.chunk_id,
            owner_id=model.owner_id,
            source_id=model.source_id,
            source_type=SourceType(model.source_type),
            source_title=model.source_title,
            chunk_index=model.chunk_index,
            content=model.content,
            page_number=model.page_number,
            updated_at=updated_at,
            vector=list(model.vector or []),
        )

"""SQLAlchemy ORM model for knowledge chunks with their embedding vectors."""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)

from notes_assistant.infrastructure.database.base import Base


class KnowledgeChunkModel(Base):
    """One chunk of a note or document, with its embedding.

    Vectors are stored as JSON arrays and scored in application code, so any
    async SQLAlchemy backend works. The composite ``(owner_id, source_id)``
    index serves source-scoped deletes; the primary key, led by
    ``owner_id``, serves the full per-owner scan behind similarity search.
    Source ids are chosen by each owner, so chunk ids are only unique
    within an owner.
    """

    __tablename__ = "knowledge_chunks"

    owner_id = Column(String(255), primary_key=True)
    chunk_id = Column(String(512), primary_key=True)
    source_id = Column(String(255), nullable=False)
    source_type = Column(String(20), nullable=False)  # "note", "document"
    source_title = Column(String(512), nullable=False, default="")
    chunk_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    page_number = Column(Integer, nullable=True)
    vector = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_knowledge_chunks_owner_source", "owner_id", "source_id"),
    )

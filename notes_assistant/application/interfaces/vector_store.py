"""Abstract repository interface (port) for chunk vectors."""

from abc import ABC, abstractmethod

from notes_assistant.domain.entities.chunk import Chunk


class VectorStore(ABC):
    """Port for chunk persistence keyed by owner and source.

    Similarity scoring happens in the application layer over
    ``get_all_for_owner``; the store itself performs no ranking.
    """

    @abstractmethod
    async def upsert(self, chunks: list[Chunk]) -> None:
        """Persist chunks with their vectors. Idempotent by ``chunk_id``, last write wins."""
        ...

    @abstractmethod
    async def delete_by_source(self, owner_id: str, source_id: str) -> int:
        """Delete every chunk of one source atomically. Returns count of deleted rows."""
        ...

    @abstractmethod
    async def replace_source(
        self, owner_id: str, source_id: str, chunks: list[Chunk]
    ) -> None:
        """Delete a source's chunks and insert ``chunks`` in a single transaction."""
        ...

    @abstractmethod
    async def get_all_for_owner(self, owner_id: str) -> list[Chunk]:
        """Return all chunks of an owner ordered by ``(source_id, chunk_index)``."""
        ...

    @abstractmethod
    async def count_for_source(self, owner_id: str, source_id: str) -> int:
        """Return the number of stored chunks for one source."""
        ...

"""Abstract interface (port) for the note/document collaborator."""

from abc import ABC, abstractmethod

from notes_assistant.domain.entities import Source


class SourceFeed(ABC):
    """Port supplying the notes and documents an owner wants searchable."""

    @abstractmethod
    async def list_sources(self, owner_id: str) -> list[Source]:
        """All sources of an owner, in the collaborator's insertion order."""
        ...

    @abstractmethod
    async def get_source(self, owner_id: str, source_id: str) -> Source | None:
        ...

    @abstractmethod
    async def upsert_source(self, source: Source) -> None:
        ...

    @abstractmethod
    async def remove_source(self, owner_id: str, source_id: str) -> bool:
        """Forget a source. Returns False if it was unknown."""
        ...

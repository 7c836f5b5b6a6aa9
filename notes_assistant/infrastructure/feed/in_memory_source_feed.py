"""In-memory source feed — the records pushed by the note-taking application."""

import logging

from notes_assistant.application.interfaces.source_feed import SourceFeed
from notes_assistant.domain.entities import Source

logger = logging.getLogger(__name__)


class InMemorySourceFeed(SourceFeed):
    """Process-local store of notes and documents, keyed by owner.

    Dicts keep insertion order, which is the order full runs index in.
    Re-pushing an existing source keeps its original position.
    """

    def __init__(self, sources: list[Source] | None = None):
        self._sources: dict[str, dict[str, Source]] = {}
        for source in sources or []:
            self._put(source)

    def _put(self, source: Source) -> None:
        self._sources.setdefault(source.owner_id, {})[source.source_id] = source

    async def list_sources(self, owner_id: str) -> list[Source]:
        return list(self._sources.get(owner_id, {}).values())

    async def get_source(self, owner_id: str, source_id: str) -> Source | None:
        return self._sources.get(owner_id, {}).get(source_id)

    async def upsert_source(self, source: Source) -> None:
        self._put(source)
        logger.debug("Stored %s %s for owner=%s", source.source_type.value, source.source_id, source.owner_id)

    async def remove_source(self, owner_id: str, source_id: str) -> bool:
        removed = self._sources.get(owner_id, {}).pop(source_id, None)
        return removed is not None

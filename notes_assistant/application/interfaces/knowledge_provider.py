"""Abstract interface (port) for public web-knowledge summaries."""

from abc import ABC, abstractmethod

from notes_assistant.domain.entities import WebSummary


class KnowledgeProvider(ABC):
    """Port for looking up a short public summary of an entity."""

    @abstractmethod
    async def summarize(self, entity_query: str) -> WebSummary | None:
        """Return a summary for the entity, or ``None`` when nothing is found.

        Absence of a result is a normal outcome and must not raise.
        """
        ...

"""Abstract interface (port) for an on-device language model."""

from abc import ABC, abstractmethod
from collections.abc import Callable

ProgressTextCallback = Callable[[str], None]


class LocalLLM(ABC):
    """Port for a model running on the user's own hardware."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Runtime capability check (hardware acceleration, local runtime reachable)."""
        ...

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        on_progress_text: ProgressTextCallback | None = None,
        temperature: float = 0.2,
    ) -> str:
        """Generate a reply, streaming the accumulated text to ``on_progress_text``.

        Raises:
            ChatProviderError: If the local runtime fails or is unavailable.
        """
        ...

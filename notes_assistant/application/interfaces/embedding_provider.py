"""Abstract interface (port) for embedding generation."""

from abc import ABC, abstractmethod
from collections.abc import Callable

ProgressCallback = Callable[[float], None]


class EmbeddingProvider(ABC):
    """Port for generating text embeddings — implemented in the infrastructure layer.

    One instance is shared by every reader and writer in the process.
    """

    @abstractmethod
    async def initialize(self, on_progress: ProgressCallback | None = None) -> None:
        """Load the model (or verify the remote backend) once.

        Concurrent callers await the same in-flight initialization; calls made
        after a successful initialization return immediately.

        Args:
            on_progress: Optional callback receiving a ratio in ``[0, 1]``.
                Best-effort: backends without granular progress may only
                report the start and the end.

        Raises:
            EmbeddingInitializationError: If the backend cannot be loaded.
        """
        ...

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed a single text into a unit-length vector.

        Initializes the backend lazily on first use.
        """
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Return the dimensionality of the embedding vectors produced by this provider."""
        ...

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """Whether initialization has completed successfully."""
        ...

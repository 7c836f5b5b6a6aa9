"""Domain-specific exceptions — framework-independent."""


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class ChatProviderError(Exception):
    """Raised when a language-model provider returns an error.

    Provider-agnostic — works for OpenRouter, a local Ollama server, etc.
    """

    def __init__(self, provider: str, status_code: int, message: str):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {status_code}: {message}")


class EmbeddingInitializationError(Exception):
    """Raised when the embedding backend cannot be loaded or reached."""

    def __init__(self, backend: str, message: str):
        self.backend = backend
        self.message = message
        super().__init__(f"Embedding backend '{backend}' unavailable: {message}")


class EmbeddingDimensionError(Exception):
    """Raised when a vector does not match the embedder's declared dimension."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected a {expected}-dimensional vector, got {actual}")


class IndexingError(Exception):
    """Raised when one source cannot be indexed (e.g. no extractable text)."""

    def __init__(self, source_id: str, message: str):
        self.source_id = source_id
        self.message = message
        super().__init__(f"Failed to index source '{source_id}': {message}")

from .vector_store_repository import SQLAlchemyVectorStore

__all__ = [
    "SQLAlchemyVectorStore",
]

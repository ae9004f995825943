from .document_store_base import DocumentStoreBase
from .documents import InMemoryDocumentStore
from .documents_sqlite import SQLiteDocumentStore


def create_document_store(db_path: str = None) -> DocumentStoreBase:
    """SQLite when a path is configured (DOCUMENTS_DB_PATH), in-memory otherwise"""
    from ...core.config import settings

    path = db_path if db_path is not None else settings.documents_db_path
    if path:
        return SQLiteDocumentStore(path)
    return InMemoryDocumentStore()


__all__ = [
    "DocumentStoreBase",
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
    "create_document_store",
]

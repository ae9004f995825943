"""
In-memory document storage (for demo purposes and tests).
Set DOCUMENTS_DB_PATH to use the SQLite store instead.
"""
from datetime import datetime
from threading import Lock
from typing import Dict, Optional

from ...models.document import Attachment, Document, Extraction, ExtractionStatus
from .document_store_base import DocumentStoreBase


class InMemoryDocumentStore(DocumentStoreBase):
    def __init__(self):
        self._attachments: Dict[int, Attachment] = {}
        self._documents: Dict[int, Document] = {}
        self._extractions: Dict[int, Extraction] = {}
        self._next_extraction_id = 1
        self._lock = Lock()

    def save_attachment(self, attachment: Attachment) -> Attachment:
        with self._lock:
            saved = attachment.model_copy(update={"id": len(self._attachments) + 1})
            self._attachments[saved.id] = saved
        return saved

    def get_attachment(self, attachment_id: int) -> Optional[Attachment]:
        return self._attachments.get(attachment_id)

    def save_document(self, document: Document) -> Document:
        with self._lock:
            saved = document.model_copy(update={"id": len(self._documents) + 1})
            self._documents[saved.id] = saved
        return saved

    def get_document(self, document_id: int) -> Optional[Document]:
        return self._documents.get(document_id)

    def list_documents(self) -> list[Document]:
        """List all documents, newest first"""
        with self._lock:
            documents = list(self._documents.values())
        return sorted(documents, key=lambda d: (d.received_at, d.id), reverse=True)

    def update_document_extraction(
        self,
        document_id: int,
        status: ExtractionStatus,
        extraction_date: datetime | None = None,
        processing_error: str | None = None,
    ) -> bool:
        with self._lock:
            document = self._documents.get(document_id)
            if document is None:
                return False
            self._documents[document_id] = document.model_copy(update={
                "extraction_status": status,
                "extraction_date": extraction_date,
                "processing_error": processing_error,
            })
        return True

    def save_extraction(self, extraction: Extraction) -> Extraction:
        with self._lock:
            previous = self._find_for_document(extraction.document_id)
            if previous is not None:
                del self._extractions[previous.id]
            saved = extraction.model_copy(update={"id": self._next_extraction_id})
            self._next_extraction_id += 1
            self._extractions[saved.id] = saved
        return saved

    def _find_for_document(self, document_id: int) -> Optional[Extraction]:
        return next((e for e in self._extractions.values() if e.document_id == document_id), None)

    def get_extraction(self, extraction_id: int) -> Optional[Extraction]:
        return self._extractions.get(extraction_id)

    def get_extraction_for_document(self, document_id: int) -> Optional[Extraction]:
        with self._lock:
            return self._find_for_document(document_id)

    def update_extraction_status(self, extraction_id: int, status: ExtractionStatus) -> bool:
        with self._lock:
            extraction = self._extractions.get(extraction_id)
            if extraction is None:
                return False
            self._extractions[extraction_id] = extraction.model_copy(update={"status": status})
        return True

    def query_extractions_by_status(self, status: ExtractionStatus) -> list[Extraction]:
        with self._lock:
            matching = [e for e in self._extractions.values() if e.status == status]
        return sorted(matching, key=lambda e: (e.created_at, e.id), reverse=True)

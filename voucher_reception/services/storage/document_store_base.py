"""
Abstract base class for document store implementations.

Defines the interface for persisting received files, their documents and
the AI extraction attached to each document, enabling dependency injection
and easy swapping of storage backends.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ...models.document import Attachment, Document, Extraction, ExtractionStatus


class DocumentStoreBase(ABC):
    """
    Abstract base class for document storage.

    Implementations can use:
    - In-memory storage (for testing/demo)
    - SQLite (for single-instance deployments)
    - PostgreSQL (for production)

    A document has at most one extraction; saving an extraction for a
    document that already has one replaces it.
    """

    @abstractmethod
    def save_attachment(self, attachment: Attachment) -> Attachment:
        """
        Store file content.

        Returns:
            The attachment with its assigned id
        """
        pass

    @abstractmethod
    def get_attachment(self, attachment_id: int) -> Optional[Attachment]:
        pass

    @abstractmethod
    def save_document(self, document: Document) -> Document:
        """
        Store a new document row.

        Returns:
            The document with its assigned id
        """
        pass

    @abstractmethod
    def get_document(self, document_id: int) -> Optional[Document]:
        pass

    @abstractmethod
    def list_documents(self) -> list[Document]:
        """List all documents, newest first"""
        pass

    @abstractmethod
    def update_document_extraction(
        self,
        document_id: int,
        status: ExtractionStatus,
        extraction_date: datetime | None = None,
        processing_error: str | None = None,
    ) -> bool:
        """
        Mirror extraction progress onto the document row.

        Returns:
            True if successful, False if the document was not found
        """
        pass

    @abstractmethod
    def save_extraction(self, extraction: Extraction) -> Extraction:
        """
        Store the extraction for a document, replacing any previous one.

        Returns:
            The extraction with its assigned id
        """
        pass

    @abstractmethod
    def get_extraction(self, extraction_id: int) -> Optional[Extraction]:
        pass

    @abstractmethod
    def get_extraction_for_document(self, document_id: int) -> Optional[Extraction]:
        pass

    @abstractmethod
    def update_extraction_status(self, extraction_id: int, status: ExtractionStatus) -> bool:
        """
        Returns:
            True if successful, False if the extraction was not found
        """
        pass

    @abstractmethod
    def query_extractions_by_status(self, status: ExtractionStatus) -> list[Extraction]:
        """Extractions in the given status, newest first"""
        pass

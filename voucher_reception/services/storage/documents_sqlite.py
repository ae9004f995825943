"""
SQLite-based document storage.

Persists received files, documents and their AI extraction across
application restarts. Each call opens its own connection, so the store can
be shared between the request thread and extraction workers.
"""

import sqlite3
from datetime import datetime
from typing import Optional

from ...models.document import Attachment, Document, Extraction, ExtractionStatus
from .document_store_base import DocumentStoreBase

DOCUMENT_COLUMNS = """
    id, attachment_id, filename, mime_type, sender_email, tenant_id,
    received_at, extraction_status, extraction_date, processing_error
"""

EXTRACTION_COLUMNS = """
    id, document_id, extraction_data, status, extraction_date, processing_errors, created_at
"""


class SQLiteDocumentStore(DocumentStoreBase):
    """
    SQLite-backed document store with persistent storage.

    Features:
    - Persistent storage across application restarts
    - One extraction per document (UNIQUE document_id)
    - Status-based filtering for extraction rows
    """

    def __init__(self, db_path: str = "documents.db"):
        """
        Initialize store with database path.

        Args:
            db_path: Path to SQLite database file (default: documents.db)
        """
        self.db_path = db_path
        self._init_database()

    def _init_database(self):
        """Create tables if they don't exist"""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS attachments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                file_data BLOB NOT NULL,
                filename TEXT NOT NULL,
                mimetype TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                attachment_id INTEGER REFERENCES attachments(id),
                filename TEXT NOT NULL,
                mime_type TEXT NOT NULL,
                sender_email TEXT,
                tenant_id INTEGER NOT NULL,
                received_at TEXT NOT NULL,
                extraction_status TEXT,
                extraction_date TEXT,
                processing_error TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS extractions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                document_id INTEGER NOT NULL UNIQUE REFERENCES documents(id),
                extraction_data TEXT NOT NULL,
                status TEXT NOT NULL,
                extraction_date TEXT,
                processing_errors TEXT,
                created_at TEXT NOT NULL,
                CHECK (status IN ('PENDING', 'PROCESSING', 'COMPLETED', 'FAILED', 'CONVERTED_TO_VOUCHER'))
            )
        """)

        # Create indexes for common queries
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_received_at
            ON documents(received_at)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_extractions_status
            ON extractions(status)
        """)

        conn.commit()
        conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _isoformat(value: datetime | None) -> str | None:
        return value.isoformat() if value else None

    def save_attachment(self, attachment: Attachment) -> Attachment:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            INSERT INTO attachments (file_data, filename, mimetype)
            VALUES (?, ?, ?)
        """, (attachment.file_data, attachment.filename, attachment.mimetype))

        attachment_id = cursor.lastrowid
        conn.commit()
        conn.close()

        return attachment.model_copy(update={"id": attachment_id})

    def get_attachment(self, attachment_id: int) -> Optional[Attachment]:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            SELECT id, file_data, filename, mimetype
            FROM attachments
            WHERE id = ?
        """, (attachment_id,))

        row = cursor.fetchone()
        conn.close()

        if row is None:
            return None
        return Attachment(**dict(row))

    def save_document(self, document: Document) -> Document:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            INSERT INTO documents (
                attachment_id, filename, mime_type, sender_email, tenant_id,
                received_at, extraction_status, extraction_date, processing_error
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            document.attachment_id,
            document.filename,
            document.mime_type,
            document.sender_email,
            document.tenant_id,
            self._isoformat(document.received_at),
            document.extraction_status.value if document.extraction_status else None,
            self._isoformat(document.extraction_date),
            document.processing_error,
        ))

        document_id = cursor.lastrowid
        conn.commit()
        conn.close()

        return document.model_copy(update={"id": document_id})

    def get_document(self, document_id: int) -> Optional[Document]:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute(f"SELECT {DOCUMENT_COLUMNS} FROM documents WHERE id = ?", (document_id,))

        row = cursor.fetchone()
        conn.close()

        if row is None:
            return None
        return Document(**dict(row))

    def list_documents(self) -> list[Document]:
        """List all documents (ordered by receive time, newest first)"""
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute(f"SELECT {DOCUMENT_COLUMNS} FROM documents ORDER BY received_at DESC, id DESC")

        rows = cursor.fetchall()
        conn.close()

        return [Document(**dict(row)) for row in rows]

    def update_document_extraction(
        self,
        document_id: int,
        status: ExtractionStatus,
        extraction_date: datetime | None = None,
        processing_error: str | None = None,
    ) -> bool:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            UPDATE documents
            SET extraction_status = ?,
                extraction_date = ?,
                processing_error = ?
            WHERE id = ?
        """, (status.value, self._isoformat(extraction_date), processing_error, document_id))

        rows_affected = cursor.rowcount
        conn.commit()
        conn.close()

        return rows_affected > 0

    def save_extraction(self, extraction: Extraction) -> Extraction:
        conn = self._get_connection()
        cursor = conn.cursor()

        # One extraction per document: replace in a single transaction
        cursor.execute("DELETE FROM extractions WHERE document_id = ?", (extraction.document_id,))
        cursor.execute("""
            INSERT INTO extractions (
                document_id, extraction_data, status, extraction_date, processing_errors, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            extraction.document_id,
            extraction.extraction_data,
            extraction.status.value,
            self._isoformat(extraction.extraction_date),
            extraction.processing_errors,
            self._isoformat(extraction.created_at),
        ))

        extraction_id = cursor.lastrowid
        conn.commit()
        conn.close()

        return extraction.model_copy(update={"id": extraction_id})

    def _fetch_extraction(self, where: str, value: int) -> Optional[Extraction]:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute(f"SELECT {EXTRACTION_COLUMNS} FROM extractions WHERE {where} = ?", (value,))

        row = cursor.fetchone()
        conn.close()

        if row is None:
            return None
        return Extraction(**dict(row))

    def get_extraction(self, extraction_id: int) -> Optional[Extraction]:
        return self._fetch_extraction("id", extraction_id)

    def get_extraction_for_document(self, document_id: int) -> Optional[Extraction]:
        return self._fetch_extraction("document_id", document_id)

    def update_extraction_status(self, extraction_id: int, status: ExtractionStatus) -> bool:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("UPDATE extractions SET status = ? WHERE id = ?", (status.value, extraction_id))

        rows_affected = cursor.rowcount
        conn.commit()
        conn.close()

        return rows_affected > 0

    def query_extractions_by_status(self, status: ExtractionStatus) -> list[Extraction]:
        """
        Query extractions by status.

        Useful for finding completed extractions that were never converted
        to a voucher, or failed ones that need a manual look.
        """
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute(f"""
            SELECT {EXTRACTION_COLUMNS}
            FROM extractions
            WHERE status = ?
            ORDER BY created_at DESC, id DESC
        """, (status.value,))

        rows = cursor.fetchall()
        conn.close()

        return [Extraction(**dict(row)) for row in rows]

"""
Voucher reception: persist incoming invoice files and run AI extraction.

save_document() stores the file synchronously and returns. PDFs are then
handed to the extraction worker pool; everything that happens there is
recorded on the document's extraction row and never raised back out.
"""

import tempfile
from datetime import datetime, UTC
from typing import Optional

from loguru import logger

from ..core.errors import QueueFullError
from ..models.document import Attachment, Document, Extraction, ExtractionStatus, Tenant
from .invoice_extraction import InvoiceExtractionService
from .invoice_types import ExtractionSuccess
from .storage.document_store_base import DocumentStoreBase
from .voucher_builder import AiVoucherCreationService
from .worker_pool import ExtractionWorkerPool, TaskHandle

PDF_MIME_TYPE = "application/pdf"


class VoucherReceptionService:
    def __init__(
        self,
        store: DocumentStoreBase,
        extraction_service: InvoiceExtractionService,
        voucher_service: AiVoucherCreationService,
        worker_pool: ExtractionWorkerPool,
    ):
        self.store = store
        self.extraction_service = extraction_service
        self.voucher_service = voucher_service
        self.worker_pool = worker_pool

    def save_document(
        self,
        file_data: bytes,
        filename: str,
        mime_type: str,
        sender_email: str,
        tenant: Tenant,
    ) -> Document:
        """
        Store a received file and queue AI extraction for PDFs.

        The document row exists when this returns, whatever happens to the
        extraction afterwards.
        """
        logger.info("Saving document", filename=filename, tenant=tenant.slug, size=len(file_data))

        attachment = self.store.save_attachment(
            Attachment(file_data=file_data, filename=filename, mimetype=mime_type)
        )
        document = self.store.save_document(Document(
            attachment_id=attachment.id,
            filename=filename,
            mime_type=mime_type,
            sender_email=sender_email,
            tenant_id=tenant.id,
        ))
        logger.info("Document saved", document_id=document.id)

        if mime_type != PDF_MIME_TYPE:
            logger.info("Skipping AI extraction for non-PDF file", filename=filename, mime_type=mime_type)
            return document

        try:
            handle = self.worker_pool.submit(
                self.process_extraction, document.id, name=self._task_name(document.id)
            )
        except QueueFullError as e:
            self._record_failure(document.id, str(e))
            return self.store.get_document(document.id)

        logger.info("AI extraction queued", document_id=document.id, task_id=handle.id)
        return document

    @staticmethod
    def _task_name(document_id: int) -> str:
        return f"extract-document-{document_id}"

    def get_task(self, document_id: int) -> Optional[TaskHandle]:
        """Latest extraction task for the document, while the pool still tracks it"""
        return self.worker_pool.find(self._task_name(document_id))

    def process_extraction(self, document_id: int) -> Optional[Extraction]:
        """
        Background task body: extract, persist the outcome, try to create a voucher.

        Never raises; failures become a FAILED extraction row.
        """
        try:
            return self._run_extraction(document_id)
        except Exception as e:
            logger.exception(f"AI extraction failed for document {document_id}: {e}")
            try:
                return self._record_failure(document_id, str(e))
            except Exception as store_error:
                logger.error(f"Could not record extraction failure for document {document_id}: {store_error}")
                return None

    def _run_extraction(self, document_id: int) -> Extraction:
        document = self.store.get_document(document_id)
        if document is None:
            raise ValueError(f"Document not found: {document_id}")
        attachment = self.store.get_attachment(document.attachment_id)
        if attachment is None:
            raise ValueError(f"Attachment not found for document: {document_id}")

        self.store.update_document_extraction(document_id, ExtractionStatus.PROCESSING)

        with tempfile.NamedTemporaryFile(prefix="invoice_", suffix=".pdf") as tmp:
            tmp.write(attachment.file_data)
            tmp.flush()
            result = self.extraction_service.extract_invoice_data(tmp.name)

        now = datetime.now(UTC)
        if isinstance(result, ExtractionSuccess):
            status, error = ExtractionStatus.COMPLETED, None
        else:
            status, error = ExtractionStatus.FAILED, result.message

        extraction = self.store.save_extraction(Extraction(
            document_id=document_id,
            extraction_data=result.model_dump_json(),
            status=status,
            extraction_date=now,
            processing_errors=error,
        ))
        self.store.update_document_extraction(document_id, status, now, error)
        logger.info("AI extraction finished", document_id=document_id, status=status.value)

        if status == ExtractionStatus.COMPLETED:
            try:
                self.voucher_service.create_voucher_from_extraction(extraction.id)
                logger.info("Auto-created voucher from AI extraction", extraction_id=extraction.id)
            except Exception as e:
                logger.warning("Could not auto-create voucher", extraction_id=extraction.id, error=str(e))

        return self.store.get_extraction(extraction.id)

    def _record_failure(self, document_id: int, message: str) -> Extraction:
        now = datetime.now(UTC)
        extraction = self.store.save_extraction(Extraction(
            document_id=document_id,
            extraction_data="{}",
            status=ExtractionStatus.FAILED,
            extraction_date=now,
            processing_errors=message,
        ))
        self.store.update_document_extraction(document_id, ExtractionStatus.FAILED, now, message)
        return extraction

    def get_document(self, document_id: int) -> Optional[Document]:
        return self.store.get_document(document_id)

    def list_documents(self) -> list[Document]:
        return self.store.list_documents()

    def get_extraction_for_document(self, document_id: int) -> Optional[Extraction]:
        return self.store.get_extraction_for_document(document_id)

    def list_extractions(self, status: ExtractionStatus) -> list[Extraction]:
        return self.store.query_extractions_by_status(status)

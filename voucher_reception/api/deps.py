from datetime import datetime

from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field

from ..core.config import settings
from ..models.document import Document, Extraction, ExtractionStatus
from ..services.invoice_extraction import InvoiceExtractionService
from ..services.invoice_types import InvoiceData
from ..services.ledger import InMemoryLedger, LedgerBase
from ..services.llm_client import LLMClient
from ..services.reception import VoucherReceptionService
from ..services.storage import DocumentStoreBase, create_document_store
from ..services.tenants import TenantDirectoryBase, create_tenant_directory
from ..services.voucher_builder import AiVoucherCreationService
from ..services.worker_pool import ExtractionWorkerPool


class EmailDocumentRequest(BaseModel):
    """Body sent by the email worker for every received attachment"""
    model_config = ConfigDict(populate_by_name=True)

    filename: str
    mime_type: str = Field(alias="mimeType")
    file_data: str = Field(alias="fileData")  # base64 encoded
    sender_email: str = Field(alias="senderEmail")


class ReceivedResponse(BaseModel):
    id: int
    filename: str
    status: str = "received"


class DocumentResponse(BaseModel):
    id: int
    filename: str
    mime_type: str
    sender_email: str | None = None
    received_at: datetime
    extraction_status: ExtractionStatus | None = None
    extraction_date: datetime | None = None
    processing_error: str | None = None
    extraction_id: int | None = None

    @classmethod
    def from_document(cls, document: Document, extraction: Extraction | None = None) -> "DocumentResponse":
        return cls(
            **document.model_dump(include={
                "id", "filename", "mime_type", "sender_email", "received_at",
                "extraction_status", "extraction_date", "processing_error",
            }),
            extraction_id=extraction.id if extraction else None,
        )


class ExtractionSummary(BaseModel):
    id: int
    document_id: int
    status: ExtractionStatus
    extraction_date: datetime | None = None
    processing_errors: str | None = None
    created_at: datetime


class ExtractionResponse(BaseModel):
    ai_extraction_id: int
    document_id: int
    status: ExtractionStatus
    extraction: InvoiceData


class Container:
    """Service graph shared by the routers (one per app)"""

    def __init__(
        self,
        store: DocumentStoreBase,
        ledger: LedgerBase,
        tenants: TenantDirectoryBase,
        llm_client: LLMClient,
        worker_pool: ExtractionWorkerPool,
    ):
        self.store = store
        self.ledger = ledger
        self.tenants = tenants
        self.llm_client = llm_client
        self.worker_pool = worker_pool
        self.extraction_service = InvoiceExtractionService(ledger, llm_client)
        self.voucher_service = AiVoucherCreationService(store, ledger)
        self.reception = VoucherReceptionService(
            store, self.extraction_service, self.voucher_service, worker_pool
        )

    def shutdown(self) -> None:
        self.worker_pool.shutdown(wait=True)


def build_container() -> Container:
    return Container(
        store=create_document_store(),
        ledger=InMemoryLedger(),
        tenants=create_tenant_directory(),
        llm_client=LLMClient(),
        worker_pool=ExtractionWorkerPool(
            max_workers=settings.extraction_max_workers,
            max_queue=settings.extraction_max_queue,
            history=settings.extraction_task_history,
        ),
    )


def get_container(request: Request) -> Container:
    return request.app.state.container

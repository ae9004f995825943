from datetime import datetime, UTC
from enum import Enum

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(UTC)


class ExtractionStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CONVERTED_TO_VOUCHER = "CONVERTED_TO_VOUCHER"


class Tenant(BaseModel):
    id: int
    slug: str
    name: str | None = None


class Attachment(BaseModel):
    id: int | None = None
    file_data: bytes = Field(default=b"", repr=False)
    filename: str
    mimetype: str


class Document(BaseModel):
    """One received file. Extraction fields mirror the latest Extraction row."""
    id: int | None = None
    attachment_id: int | None = None
    filename: str
    mime_type: str
    sender_email: str | None = None
    tenant_id: int
    received_at: datetime = Field(default_factory=utcnow)
    extraction_status: ExtractionStatus | None = None
    extraction_date: datetime | None = None
    processing_error: str | None = None


class Extraction(BaseModel):
    id: int | None = None
    document_id: int
    extraction_data: str = "{}"  # JSON string
    status: ExtractionStatus = ExtractionStatus.PENDING
    extraction_date: datetime | None = None
    processing_errors: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

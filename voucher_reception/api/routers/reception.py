import base64
import binascii

from fastapi import APIRouter, Depends, File, Header, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from loguru import logger

from ...core.config import settings
from ...core.errors import (
    ExtractionDecodeError,
    ExtractionNotFoundError,
    InvalidExtractionStateError,
    LedgerError,
)
from ...models.document import ExtractionStatus
from ...models.ledger import Voucher
from ...services.voucher_builder import decode_stored_invoice
from ..deps import (
    Container,
    DocumentResponse,
    EmailDocumentRequest,
    ExtractionResponse,
    ExtractionSummary,
    ReceivedResponse,
    get_container,
)

router = APIRouter(tags=["voucher-reception"])


@router.post("/api/voucher-reception", response_model=ReceivedResponse)
def receive_document_from_email(
    req: EmailDocumentRequest,
    x_tenant_slug: str = Header(...),
    container: Container = Depends(get_container),
):
    """
    Receive an invoice attachment forwarded by the email worker.

    The file is stored right away; AI extraction for PDFs runs in the
    background. Errors are returned as {"error": "..."} with status 400.
    """
    logger.info("Receiving voucher document by email", tenant=x_tenant_slug, filename=req.filename)

    tenant = container.tenants.find_tenant_by_slug(x_tenant_slug)
    if tenant is None:
        return JSONResponse(status_code=400, content={"error": "Company not found"})

    try:
        file_data = base64.b64decode(req.file_data, validate=True)
    except (binascii.Error, ValueError):
        return JSONResponse(status_code=400, content={"error": "Invalid base64 data"})

    saved = container.reception.save_document(
        file_data=file_data,
        filename=req.filename,
        mime_type=req.mime_type,
        sender_email=req.sender_email,
        tenant=tenant,
    )
    return ReceivedResponse(id=saved.id, filename=saved.filename)


@router.post("/voucher-reception/upload")
def upload_documents(
    file: list[UploadFile] = File(...),
    x_tenant_slug: str = Header(...),
    container: Container = Depends(get_container),
):
    """Upload one or more files from the web UI; empty files are skipped"""
    tenant = container.tenants.find_tenant_by_slug(x_tenant_slug)
    if tenant is None:
        raise HTTPException(status_code=400, detail=f"Tenant not found for slug: {x_tenant_slug}")

    logger.info("Voucher reception file upload", files=len(file), tenant=tenant.slug)

    documents = []
    for upload in file:
        content = upload.file.read()
        if not content:
            logger.warning("Skipping empty upload", filename=upload.filename)
            continue
        saved = container.reception.save_document(
            file_data=content,
            filename=upload.filename or "unknown",
            mime_type=upload.content_type or "application/octet-stream",
            sender_email=settings.web_upload_sender_email,
            tenant=tenant,
        )
        documents.append(DocumentResponse.from_document(saved))

    if not documents:
        raise HTTPException(status_code=400, detail="Please select files to upload")

    return {
        "uploaded": [d.filename for d in documents],
        "message": f"{len(documents)} file(s) uploaded successfully!",
        "documents": documents,
    }


@router.get("/voucher-reception/documents", response_model=list[DocumentResponse])
def list_documents(container: Container = Depends(get_container)):
    """All received documents with their extraction status, newest first"""
    reception = container.reception
    return [
        DocumentResponse.from_document(d, reception.get_extraction_for_document(d.id))
        for d in reception.list_documents()
    ]


@router.get("/voucher-reception/documents/{document_id}", response_model=DocumentResponse)
def get_document(document_id: int, container: Container = Depends(get_container)):
    document = container.reception.get_document(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return DocumentResponse.from_document(
        document, container.reception.get_extraction_for_document(document_id)
    )


@router.get("/voucher-reception/documents/{document_id}/extraction", response_model=ExtractionResponse)
def show_extraction(document_id: int, container: Container = Depends(get_container)):
    extraction = container.reception.get_extraction_for_document(document_id)
    if extraction is None or extraction.status != ExtractionStatus.COMPLETED:
        raise HTTPException(status_code=404, detail="AI extraction not found or not completed")

    try:
        data = decode_stored_invoice(extraction.extraction_data)
    except ExtractionDecodeError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return ExtractionResponse(
        ai_extraction_id=extraction.id,
        document_id=document_id,
        status=extraction.status,
        extraction=data,
    )


@router.get("/voucher-reception/extractions", response_model=list[ExtractionSummary])
def list_extractions(
    status: ExtractionStatus = ExtractionStatus.COMPLETED,
    container: Container = Depends(get_container),
):
    """
    Extractions in one status, newest first.

    The default (COMPLETED) lists extractions still waiting to become a voucher.
    """
    return [
        ExtractionSummary(**e.model_dump(exclude={"extraction_data"}))
        for e in container.reception.list_extractions(status)
    ]


@router.post("/voucher-reception/extractions/{extraction_id}/voucher", response_model=Voucher)
def create_voucher_from_ai(extraction_id: int, container: Container = Depends(get_container)):
    """Create a voucher from a completed AI extraction"""
    try:
        return container.voucher_service.create_voucher_from_extraction(extraction_id)
    except ExtractionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidExtractionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ExtractionDecodeError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except LedgerError as e:
        logger.error(f"Failed to create voucher from AI extraction: {e}")
        raise HTTPException(status_code=400, detail=f"Failed to create voucher: {e}")

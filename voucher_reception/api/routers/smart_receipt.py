from pathlib import PurePath

from fastapi import APIRouter, Depends, File, Header, HTTPException, UploadFile
from loguru import logger

from ...core.config import settings
from ..deps import Container, get_container

router = APIRouter(prefix="/smart-receipt", tags=["smart-receipt"])

ALLOWED_EXTENSIONS = {".pdf", ".jpg", ".jpeg", ".png"}


@router.post("/upload")
def upload_invoice(
    invoiceFile: UploadFile = File(...),
    x_tenant_slug: str = Header(...),
    container: Container = Depends(get_container),
):
    """
    Upload a single invoice or receipt.

    PDF, JPG, JPEG and PNG are accepted; only PDFs go through AI extraction.
    """
    filename = invoiceFile.filename or ""
    extension = PurePath(filename).suffix.lower()
    logger.info("Smart receipt upload", filename=filename, content_type=invoiceFile.content_type)

    content = invoiceFile.file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Please select a file to upload")

    if extension not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail="Invalid file format. Please upload PDF, JPG, JPEG, or PNG files only.",
        )

    tenant = container.tenants.find_tenant_by_slug(x_tenant_slug)
    if tenant is None:
        raise HTTPException(status_code=400, detail=f"Tenant not found for slug: {x_tenant_slug}")

    saved = container.reception.save_document(
        file_data=content,
        filename=filename,
        mime_type=invoiceFile.content_type or "application/octet-stream",
        sender_email=settings.web_upload_sender_email,
        tenant=tenant,
    )

    if extension == ".pdf":
        message = (
            "PDF file uploaded. AI extraction is processing in the background. "
            "Check the Voucher Reception page for status updates."
        )
    else:
        message = "File uploaded successfully! (AI extraction available for PDF files only)"

    return {
        "success": f"File uploaded successfully! Document ID: {saved.id}",
        "uploaded_file": filename,
        "document_id": saved.id,
        "message": message,
    }

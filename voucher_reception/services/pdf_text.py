from pathlib import Path

import pdfplumber
from loguru import logger
from pypdf import PdfReader


def _pdfplumber_text(path: str) -> str:
    parts: list[str] = []
    with pdfplumber.open(path) as pdf:
        for page in pdf.pages:
            parts.append(page.extract_text() or "")
    return "\n".join(parts).strip()


# Fallback: pypdf sometimes reads text layers pdfplumber skips
def _pypdf_text(path: str) -> str:
    reader = PdfReader(path)
    if reader.is_encrypted:
        reader.decrypt("")
    return "\n".join(page.extract_text() or "" for page in reader.pages).strip()


def extract_text_from_pdf(path: str | Path) -> str:
    """
    Extract the text layer of a PDF.

    Returns an empty string when no text can be read (malformed, encrypted
    or image-only PDFs). Never raises.
    """
    path = str(path)

    try:
        text = _pdfplumber_text(path)
    except Exception as e:
        logger.warning("pdfplumber could not read PDF", path=path, error=str(e))
        text = ""

    if not text:
        try:
            text = _pypdf_text(path)
        except Exception as e:
            logger.error("Error extracting text from PDF", path=path, error=str(e))
            return ""

    logger.debug("Extracted PDF text", path=path, length=len(text))
    return text

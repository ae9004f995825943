from pathlib import Path

from loguru import logger

from .categorization import build_categorization_context
from .extraction_parser import parse_invoice_data, validate_and_correct
from .invoice_types import ExtractionError, ExtractionResult, ExtractionSuccess
from .ledger.ledger_base import LedgerBase
from .llm_client import LLMClient
from .pdf_text import extract_text_from_pdf

NO_TEXT_MESSAGE = "No text could be extracted from the PDF"
LLM_FAILED_MESSAGE = "Failed to process with LLM API"


class InvoiceExtractionService:
    """PDF text -> categorization context -> LLM -> parse -> categorization checks"""

    def __init__(self, ledger: LedgerBase, llm_client: LLMClient = None):
        self.ledger = ledger
        self.llm_client = llm_client or LLMClient()

    def extract_invoice_data(self, path: str | Path) -> ExtractionResult:
        logger.info("Starting invoice extraction", file=Path(path).name)

        text = extract_text_from_pdf(path)
        if not text.strip():
            logger.error(NO_TEXT_MESSAGE)
            return ExtractionError(message=NO_TEXT_MESSAGE)

        logger.info("Extracted PDF text", length=len(text), preview=text[:200])

        context = build_categorization_context(self.ledger)
        raw = self.llm_client.complete(text, context)
        if raw is None:
            logger.error(LLM_FAILED_MESSAGE)
            return ExtractionError(message=LLM_FAILED_MESSAGE)

        result = parse_invoice_data(raw)
        if isinstance(result, ExtractionError):
            return result

        validated = validate_and_correct(result.data, context)
        logger.info(
            "Invoice extraction succeeded",
            invoice_number=validated.invoice_details.invoice_number,
            account=validated.debit_prediction.account,
            vat_code=validated.invoice_details.vat_code,
        )
        return ExtractionSuccess(data=validated)

"""
Voucher creation from completed AI extractions.

Every voucher built here has exactly two postings: the predicted expense
account debited with the order total and accounts payable credited with
the same amount negated, so it balances by construction.
"""

import json
import threading
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional

from loguru import logger
from pydantic import ValidationError

from ..core.config import settings
from ..core.errors import (
    ExtractionDecodeError,
    ExtractionNotFoundError,
    InvalidExtractionStateError,
)
from ..models.document import ExtractionStatus
from ..models.ledger import CreatePostingPayload, CreateVoucherPayload, Voucher
from .invoice_types import InvoiceData
from .ledger.ledger_base import LedgerBase
from .storage.document_store_base import DocumentStoreBase

# Storage format v1: the bare InvoiceData object.
# Storage format v2: {"type": "success", "data": {...InvoiceData...}}.
STORAGE_V1 = 1
STORAGE_V2 = 2


def _decode_v1(payload: dict) -> InvoiceData:
    return InvoiceData.model_validate(payload)


def _decode_v2(payload: dict) -> InvoiceData:
    return InvoiceData.model_validate(payload["data"])


DECODERS: dict[int, Callable[[dict], InvoiceData]] = {
    STORAGE_V1: _decode_v1,
    STORAGE_V2: _decode_v2,
}


def detect_storage_version(payload: Any) -> int:
    if isinstance(payload, dict) and "data" in payload:
        return STORAGE_V2
    return STORAGE_V1


def decode_stored_invoice(extraction_data: str) -> InvoiceData:
    """
    Decode Extraction.extraction_data into InvoiceData.

    Raises:
        ExtractionDecodeError: If the JSON is malformed or holds no invoice
    """
    try:
        payload = json.loads(extraction_data)
    except (TypeError, json.JSONDecodeError) as e:
        raise ExtractionDecodeError(f"Extraction data is not valid JSON: {e}") from e

    version = detect_storage_version(payload)
    try:
        return DECODERS[version](payload)
    except (ValidationError, TypeError) as e:
        raise ExtractionDecodeError(f"Extraction data (v{version}) is not a valid invoice: {e}") from e


def build_postings(data: InvoiceData, payable_account: str = "2400") -> list[CreatePostingPayload]:
    details = data.invoice_details
    invoice_date = date.fromisoformat(details.invoice_date)
    amount = Decimal(str(details.order_total))

    debit = CreatePostingPayload(
        account_number=data.debit_prediction.account,
        amount=amount,
        currency=details.currency,
        posting_date=invoice_date,
        description=details.description,
        vat_code=details.vat_code,
        row_number=0,
    )
    credit = CreatePostingPayload(
        account_number=payable_account,
        amount=-amount,
        currency=details.currency,
        posting_date=invoice_date,
        description=details.description,
        vat_code=None,
        row_number=1,
    )
    return [debit, credit]


class AiVoucherCreationService:
    def __init__(self, store: DocumentStoreBase, ledger: LedgerBase, payable_account: str = None):
        self.store = store
        self.ledger = ledger
        self.payable_account = payable_account or settings.accounts_payable_account
        # Held from the COMPLETED check until the status update
        self._lock = threading.Lock()

    def create_voucher_from_extraction(self, extraction_id: int) -> Voucher:
        """
        Create and link a voucher for a COMPLETED extraction.

        Raises:
            ExtractionNotFoundError: Unknown extraction id (or its document is gone)
            InvalidExtractionStateError: Extraction is not COMPLETED (including already converted)
            ExtractionDecodeError: Stored JSON cannot be decoded
            LedgerError: The ledger rejected the voucher
        """
        logger.info("Creating voucher from AI extraction", extraction_id=extraction_id)
        with self._lock:
            return self._create_voucher(extraction_id)

    def _create_voucher(self, extraction_id: int) -> Voucher:
        extraction = self.store.get_extraction(extraction_id)
        if extraction is None:
            raise ExtractionNotFoundError(f"AI extraction not found with ID: {extraction_id}")

        if extraction.status != ExtractionStatus.COMPLETED:
            raise InvalidExtractionStateError(
                f"AI extraction is not completed. Current status: {extraction.status.value}"
            )

        document = self.store.get_document(extraction.document_id)
        if document is None:
            raise ExtractionNotFoundError(f"Document not found for AI extraction {extraction_id}")

        data = decode_stored_invoice(extraction.extraction_data)
        details = data.invoice_details
        try:
            postings = build_postings(data, self.payable_account)
            voucher_date = date.fromisoformat(details.invoice_date)
        except ValueError as e:
            raise ExtractionDecodeError(f"Invalid invoice date '{details.invoice_date}': {e}") from e

        logger.info(
            "Extraction data parsed",
            invoice_number=details.invoice_number,
            company=details.company_name,
            amount=details.order_total,
            currency=details.currency,
            account=data.debit_prediction.account,
            tenant_id=document.tenant_id,
        )

        voucher = self.ledger.create_voucher(
            CreateVoucherPayload(date=voucher_date, description=details.description, postings=postings),
            document.tenant_id,
        )

        if not self.ledger.link_extraction(voucher.id, extraction_id):
            logger.error("Could not find voucher to link to AI extraction", voucher_id=voucher.id)
        else:
            voucher = voucher.model_copy(update={"ai_extraction_id": extraction_id})

        self.store.update_extraction_status(extraction_id, ExtractionStatus.CONVERTED_TO_VOUCHER)
        self.store.update_document_extraction(
            document.id,
            ExtractionStatus.CONVERTED_TO_VOUCHER,
            extraction.extraction_date,
            None,
        )

        logger.info("Created voucher from AI extraction", voucher_id=voucher.id, number=voucher.number)
        return voucher

    def get_invoice_data(self, extraction_id: int) -> Optional[InvoiceData]:
        """Decoded invoice for display; None if missing or undecodable"""
        extraction = self.store.get_extraction(extraction_id)
        if extraction is None:
            return None
        try:
            return decode_stored_invoice(extraction.extraction_data)
        except ExtractionDecodeError as e:
            logger.warning(f"Could not decode AI extraction {extraction_id}: {e}")
            return None

    def get_invoice_data_for_voucher(self, voucher: Voucher) -> Optional[InvoiceData]:
        if voucher.ai_extraction_id is None:
            return None
        return self.get_invoice_data(voucher.ai_extraction_id)

    @staticmethod
    def is_voucher_ai_generated(voucher: Voucher) -> bool:
        return voucher.ai_extraction_id is not None

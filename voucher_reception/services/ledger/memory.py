"""
In-memory ledger (for demo and tests).
In production, back LedgerBase with the accounting application's voucher service.
"""
from decimal import Decimal
from threading import Lock
from typing import Dict, Optional

from loguru import logger

from ...core.errors import LedgerError, UnbalancedVoucherError, UnknownAccountError
from ...models.ledger import Account, CreateVoucherPayload, VatCode, Voucher
from .ledger_base import LedgerBase

DEFAULT_VAT_CODES = [
    VatCode(code="0", description="No VAT treatment", rate=0.0, vat_type="NONE", vat_category="EXEMPT"),
    VatCode(code="1", description="Deductible input VAT, standard rate", rate=25.0, vat_type="INPUT", vat_category="STANDARD"),
    VatCode(code="11", description="Deductible input VAT, medium rate", rate=15.0, vat_type="INPUT", vat_category="MEDIUM"),
    VatCode(code="13", description="Deductible input VAT, low rate", rate=12.0, vat_type="INPUT", vat_category="LOW"),
    VatCode(code="3", description="Output VAT, standard rate", rate=25.0, vat_type="OUTPUT", vat_category="STANDARD"),
    VatCode(code="5", description="Sales exempt from VAT", rate=0.0, vat_type="OUTPUT", vat_category="EXEMPT"),
]

DEFAULT_ACCOUNTS = [
    Account(number="1920", name="Bank deposits", description="Bank account"),
    Account(number="2400", name="Accounts payable", description="Supplier liabilities"),
    Account(number="2710", name="Input VAT", description="Deductible input VAT"),
    Account(number="3000", name="Sales revenue", description="Sales, taxable"),
    Account(number="4000", name="Purchase of goods", description="Cost of goods sold"),
    Account(number="6200", name="Electricity", description="Electricity and power"),
    Account(number="6300", name="Rent of premises", description="Office and warehouse rent"),
    Account(number="6540", name="Inventory", description="Office equipment and supplies"),
    Account(number="6700", name="Audit and accounting fees", description="External accounting services"),
    Account(number="6790", name="Other external services", description="Other purchased services"),
    Account(number="6900", name="Telephone", description="Telephone and internet"),
    Account(number="7100", name="Travel costs", description="Travel and transport"),
    Account(number="7320", name="Advertising costs", description="Advertising and marketing"),
    Account(number="7500", name="Insurance premiums", description="Insurance"),
]


class InMemoryLedger(LedgerBase):
    def __init__(self, vat_codes: list[VatCode] = None, accounts: list[Account] = None):
        self._vat_codes = list(vat_codes if vat_codes is not None else DEFAULT_VAT_CODES)
        self._accounts: Dict[str, Account] = {
            account.number: account
            for account in (accounts if accounts is not None else DEFAULT_ACCOUNTS)
        }
        self._vouchers: Dict[int, Voucher] = {}
        self._next_number: Dict[int, int] = {}
        self._lock = Lock()

    def find_all_vat_codes(self) -> list[VatCode]:
        return list(self._vat_codes)

    def vat_code_exists(self, code: str) -> bool:
        return any(vat.code == code for vat in self._vat_codes)

    def find_all_accounts(self) -> list[Account]:
        return list(self._accounts.values())

    def find_account_by_number(self, number: str) -> Optional[Account]:
        return self._accounts.get(number)

    def create_voucher(self, payload: CreateVoucherPayload, tenant_id: int) -> Voucher:
        """Validate and store a voucher, numbering it within the tenant"""
        if not payload.postings:
            raise LedgerError("Voucher has no postings")

        for posting in payload.postings:
            if self.find_account_by_number(posting.account_number) is None:
                raise UnknownAccountError(f"Unknown account: {posting.account_number}")
            if posting.vat_code is not None and not self.vat_code_exists(posting.vat_code):
                raise LedgerError(f"Unknown VAT code: {posting.vat_code}")

        total = sum((posting.amount for posting in payload.postings), Decimal("0"))
        if total != 0:
            raise UnbalancedVoucherError(f"Postings do not balance (difference {total})")

        with self._lock:
            voucher_id = len(self._vouchers) + 1
            number = self._next_number.get(tenant_id, 1)
            self._next_number[tenant_id] = number + 1
            voucher = Voucher(
                id=voucher_id,
                number=number,
                tenant_id=tenant_id,
                date=payload.date,
                description=payload.description,
                postings=list(payload.postings),
            )
            self._vouchers[voucher_id] = voucher

        logger.info("Voucher created", voucher_id=voucher_id, number=number, tenant_id=tenant_id)
        return voucher

    def get_voucher(self, voucher_id: int) -> Optional[Voucher]:
        return self._vouchers.get(voucher_id)

    def link_extraction(self, voucher_id: int, extraction_id: int) -> bool:
        with self._lock:
            voucher = self._vouchers.get(voucher_id)
            if voucher is None:
                return False
            self._vouchers[voucher_id] = voucher.model_copy(update={"ai_extraction_id": extraction_id})
        return True

    def list_vouchers(self, tenant_id: int = None) -> list[Voucher]:
        with self._lock:
            vouchers = list(self._vouchers.values())
        return [
            voucher for voucher in vouchers
            if tenant_id is None or voucher.tenant_id == tenant_id
        ]

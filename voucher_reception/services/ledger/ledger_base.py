"""
Abstract base class for the ledger collaborator.

The ledger owns the VAT table, the chart of accounts and voucher
persistence. Voucher reception only reads categorization data from it and
submits balanced vouchers to it.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ...models.ledger import Account, CreateVoucherPayload, VatCode, Voucher


class LedgerBase(ABC):
    """
    Abstract base class for ledger access.

    Implementations can use:
    - In-memory storage (for testing/demo)
    - The accounting application's voucher service (production)
    """

    @abstractmethod
    def find_all_vat_codes(self) -> list[VatCode]:
        """Return every VAT code currently valid for postings"""
        pass

    @abstractmethod
    def vat_code_exists(self, code: str) -> bool:
        pass

    @abstractmethod
    def find_all_accounts(self) -> list[Account]:
        """Return the full chart of accounts"""
        pass

    @abstractmethod
    def find_account_by_number(self, number: str) -> Optional[Account]:
        pass

    @abstractmethod
    def create_voucher(self, payload: CreateVoucherPayload, tenant_id: int) -> Voucher:
        """
        Persist a voucher for a tenant.

        Args:
            payload: Voucher date, description and postings
            tenant_id: Owning tenant

        Returns:
            The created voucher with its id and per-tenant number

        Raises:
            LedgerError: If the postings do not balance or reference unknown accounts
        """
        pass

    @abstractmethod
    def get_voucher(self, voucher_id: int) -> Optional[Voucher]:
        pass

    @abstractmethod
    def link_extraction(self, voucher_id: int, extraction_id: int) -> bool:
        """
        Record which AI extraction a voucher was created from.

        Returns:
            True if successful, False if the voucher was not found
        """
        pass

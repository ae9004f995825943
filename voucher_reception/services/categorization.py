"""
Categorization context for invoice extraction.

The model cannot be trusted to invent valid VAT codes or account numbers,
so the current VAT table and cost accounts are read from the ledger and
embedded in the prompt. The same snapshot is later used to validate the
model's answer.
"""

from pydantic import BaseModel

from ..models.ledger import Account, VatCode
from .ledger.ledger_base import LedgerBase

COST_ACCOUNT_PREFIXES = ("4", "6", "7")


def is_cost_account(account_number: str) -> bool:
    """4XXX cost of goods, 6XXX-7XXX operating expenses"""
    return account_number.startswith(COST_ACCOUNT_PREFIXES)


class CategorizationContext(BaseModel):
    vat_codes: list[VatCode]
    cost_accounts: list[Account]

    @property
    def valid_vat_codes(self) -> set[str]:
        return {vat.code for vat in self.vat_codes}

    @property
    def valid_cost_accounts(self) -> set[str]:
        return {account.number for account in self.cost_accounts}


def build_categorization_context(ledger: LedgerBase) -> CategorizationContext:
    """Snapshot the ledger's VAT codes and cost accounts (no caching)"""
    cost_accounts = sorted(
        (account for account in ledger.find_all_accounts() if is_cost_account(account.number)),
        key=lambda account: account.number,
    )
    return CategorizationContext(
        vat_codes=list(ledger.find_all_vat_codes()),
        cost_accounts=cost_accounts,
    )


def render_categorization_rules(context: CategorizationContext) -> str:
    vat_lines = "\n".join(
        f"- Code: {vat.code}, Description: {vat.description}, Rate: {vat.rate}%, "
        f"Type: {vat.vat_type}, Category: {vat.vat_category}"
        for vat in context.vat_codes
    )
    account_lines = "\n".join(
        f"- {account.number}: {account.name} ({account.description})"
        for account in context.cost_accounts
    )

    return f"""AVAILABLE CATEGORIZATION RULES:

VAT CODES (for vat_code field):
{vat_lines}

COST ACCOUNTS (for debit_prediction.account field):
{account_lines}

IMPORTANT RULES:
1. For vat_code: Use only the exact codes from the VAT codes list above
2. For debit_prediction.account: Use only account numbers from the cost accounts list above (4XXX, 6XXX, 7XXX series)
3. If no exact match is found, use the most appropriate code/account based on the invoice content
4. For Norwegian invoices, VAT rate 25% typically uses code "1", 12% uses code "13", 0% uses code "0"
"""

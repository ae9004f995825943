"""
Parsing and categorization checks for LLM invoice output.

LLM output is untrusted. The VAT code and the debit account it predicts
must exist in the ledger, so invalid values are replaced with deterministic
choices instead of being rejected. Everything here is pure: the valid sets
come in through the CategorizationContext argument.
"""

from loguru import logger
from pydantic import ValidationError

from .categorization import CategorizationContext, is_cost_account
from .invoice_types import ExtractionError, ExtractionResult, ExtractionSuccess, InvoiceData

# Ordered: first matching rule wins
ACCOUNT_KEYWORD_RULES: list[tuple[tuple[str, ...], str]] = [
    (("office", "supplies"), "6540"),         # Inventory
    (("rent", "lease"), "6300"),              # Rent of premises
    (("electricity", "power"), "6200"),       # Electricity
    (("telephone", "phone"), "6900"),         # Telephone
    (("travel", "transport"), "7100"),        # Travel costs
    (("advertising", "marketing"), "7320"),   # Advertising costs
    (("insurance",), "7500"),                 # Insurance premiums
    (("audit", "accounting"), "6700"),        # Audit and accounting fees
]
DEFAULT_ACCOUNT = "6790"  # Other external services

VAT_CODE_BY_PERCENTAGE = {
    25.0: "1",   # Standard Norwegian rate
    12.0: "13",  # Low rate
    0.0: "0",    # No VAT
}
DEFAULT_VAT_CODE = "1"


def clean_llm_response(response: str) -> str:
    """Strip Markdown code fences (```json ... ```) around the JSON body"""
    cleaned = response.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json"):]
    elif cleaned.startswith("```"):
        cleaned = cleaned[len("```"):]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-len("```")]
    return cleaned.strip()


def parse_invoice_data(response: str) -> ExtractionResult:
    """Parse raw LLM output. Never raises; bad output becomes an ExtractionError."""
    cleaned = clean_llm_response(response)
    try:
        return ExtractionSuccess(data=InvoiceData.model_validate_json(cleaned))
    except ValidationError as e:
        logger.error("Failed to parse LLM response as invoice JSON", errors=e.error_count())
        return ExtractionError(message=f"Failed to parse LLM response: {e}")


def determine_vat_code(vat_percentage: float) -> str:
    return VAT_CODE_BY_PERCENTAGE.get(vat_percentage, DEFAULT_VAT_CODE)


def determine_account(description: str) -> str:
    lowered = (description or "").lower()
    for keywords, account in ACCOUNT_KEYWORD_RULES:
        if any(keyword in lowered for keyword in keywords):
            return account
    return DEFAULT_ACCOUNT


def validate_and_correct(data: InvoiceData, context: CategorizationContext) -> InvoiceData:
    """
    Replace an unknown VAT code or a non-cost debit account.

    Args:
        data: Parsed invoice from the model
        context: VAT codes and cost accounts valid at extraction time

    Returns:
        A corrected copy of the invoice (the input is left untouched)
    """
    details = data.invoice_details
    vat_code = details.vat_code
    account = data.debit_prediction.account

    if vat_code not in context.valid_vat_codes:
        vat_code = determine_vat_code(details.vat_percentage)
        logger.warning(
            "Corrected invalid VAT code",
            original=details.vat_code,
            corrected=vat_code,
            vat_percentage=details.vat_percentage,
        )

    if account not in context.valid_cost_accounts or not is_cost_account(account):
        account = determine_account(details.description)
        logger.warning(
            "Corrected invalid debit account",
            original=data.debit_prediction.account,
            corrected=account,
        )

    return data.model_copy(update={
        "debit_prediction": data.debit_prediction.model_copy(update={"account": account}),
        "invoice_details": details.model_copy(update={"vat_code": vat_code}),
    })

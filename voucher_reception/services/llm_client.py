import httpx
from loguru import logger

from ..core.config import settings
from .categorization import CategorizationContext, render_categorization_rules

SYSTEM_PROMPT = (
    "You are a specialized invoice extraction assistant for Norwegian accounting. "
    "Always use the provided categorization rules exactly."
)

RESPONSE_SCHEMA_EXAMPLE = """{
  "debit_prediction": {
    "account": "6540"
  },
  "invoice_details": {
    "invoice_number": "INV-2025-0092",
    "invoice_date": "2025-07-15",
    "due_date": "2025-08-15",
    "KID_number": "1234567890123456789012345",
    "account_number": "98765432101",
    "swift_bic": "DNBANOKKXXX",
    "company_name": "Example Supplies AS",
    "company_number": "981234567",
    "order_total": 12500.50,
    "currency": "NOK",
    "vat_percentage": 25.0,
    "vat_code": "1",
    "vat_amount": 2500.10,
    "description": "Office chairs and desks, July 2025",
    "project": "Office Upgrade Q3"
  }
}"""

CRITICAL_INSTRUCTIONS = """CRITICAL INSTRUCTIONS:
1. For vat_code: MUST use one of the exact codes from the VAT codes list above
2. For debit_prediction.account: MUST use one of the exact account numbers from the cost accounts list above
3. For Norwegian invoices: VAT rate 25% = code "1", 12% = code "13", 0% = code "0"
4. For cost accounts: Choose the most appropriate account based on the invoice description
5. If unsure about account, prefer general accounts like 6540 (Inventory) or 6790 (Other External Services)
6. For optional fields, use null if not found:
   - due_date: Use null if no due date is specified
   - KID_number: Use null if not found (common for international invoices)
   - account_number: Use null if no bank account number is provided
   - swift_bic: Use null if no SWIFT/BIC code is provided
   - project: Use null if no specific project is mentioned
7. For dates: Use YYYY-MM-DD format
8. For amounts: Use decimal numbers (e.g., 12500.50, not 12500,50)
9. For company_number: Use only the numeric part (e.g., "981234567" not "NO 981 234 567 MVA")"""


def build_extraction_prompt(text: str, context: CategorizationContext) -> str:
    return "\n\n".join([
        "You are an invoice extraction assistant specialized in Norwegian accounting standards.",
        render_categorization_rules(context).strip(),
        "Extract the following details from this invoice text and return a JSON response in this exact format:",
        RESPONSE_SCHEMA_EXAMPLE,
        CRITICAL_INSTRUCTIONS,
        f'Here is the invoice text:\n"""\n{text}\n"""',
    ])


class LLMClient:
    """
    Minimal OpenAI-compatible chat completions client.

    One attempt per call, no retries. Every failure (missing key, transport
    error, bad status, unexpected body) is logged and returned as None.
    """

    def __init__(
        self,
        base_url: str = None,
        api_key: str = None,
        model: str = None,
        temperature: float = None,
        timeout: float = None,
    ):
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.llm_api_key
        self.model = model or settings.llm_model
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self.timeout = timeout or settings.llm_timeout_seconds

    def complete(self, text: str, context: CategorizationContext) -> str | None:
        if not self.api_key:
            logger.error("LLM API key is not configured (set LLM_API_KEY)")
            return None

        request_body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_extraction_prompt(text, context)},
            ],
            "temperature": self.temperature,
        }

        try:
            with httpx.Client(timeout=self.timeout) as client:
                r = client.post(
                    f"{self.base_url}/chat/completions",
                    json=request_body,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                r.raise_for_status()
                body = r.json()
            return body["choices"][0]["message"]["content"]
        except httpx.HTTPStatusError as e:
            logger.error("LLM API returned an error", status_code=e.response.status_code, model=self.model)
            return None
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Error calling LLM API", model=self.model, error=str(e))
            return None

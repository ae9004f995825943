from typing import Literal

from pydantic import BaseModel, ConfigDict


class DebitPrediction(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    account: str


class InvoiceDetails(BaseModel):
    # LLMs often answer numeric ids (org numbers, KID, accounts) as bare JSON numbers
    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    invoice_number: str
    invoice_date: str
    due_date: str | None = None
    KID_number: str | None = None
    account_number: str | None = None
    swift_bic: str | None = None
    company_name: str
    company_number: str
    order_total: float
    currency: str
    vat_percentage: float
    vat_code: str
    vat_amount: float
    description: str
    project: str | None = None


class InvoiceData(BaseModel):
    """Structured invoice as returned by the LLM (after categorization checks)"""
    model_config = ConfigDict(extra="ignore")

    debit_prediction: DebitPrediction
    invoice_details: InvoiceDetails


class ExtractionSuccess(BaseModel):
    type: Literal["success"] = "success"
    data: InvoiceData


class ExtractionError(BaseModel):
    type: Literal["error"] = "error"
    message: str


ExtractionResult = ExtractionSuccess | ExtractionError

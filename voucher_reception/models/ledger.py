import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field


class VatCode(BaseModel):
    code: str
    description: str
    rate: float
    vat_type: str
    vat_category: str


class Account(BaseModel):
    number: str
    name: str
    description: str = ""


class CreatePostingPayload(BaseModel):
    account_number: str
    amount: Decimal
    currency: str
    posting_date: dt.date
    description: str | None = None
    vat_code: str | None = None
    row_number: int = 0


class CreateVoucherPayload(BaseModel):
    date: dt.date
    description: str | None = None
    postings: list[CreatePostingPayload] = Field(default_factory=list)


class Voucher(BaseModel):
    id: int
    number: int
    tenant_id: int
    date: dt.date
    description: str | None = None
    postings: list[CreatePostingPayload] = Field(default_factory=list)
    ai_extraction_id: int | None = None

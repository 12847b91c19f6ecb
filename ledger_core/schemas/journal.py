"""
Pydantic schemas for journal operations.

Request schemas only coerce types (dates, decimals, enums). The
accounting rules (line count, balance, tax reconciliation, references)
are checked by the JournalValidator so that every problem is reported
together in one structured error.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from ledger_core.models.enums import EntrySide


# --- Request Schemas ---

class JournalLineCreate(BaseModel):
    """A single debit or credit line."""
    side: EntrySide
    account_code: str = Field(max_length=10)
    sub_account_code: str | None = Field(default=None, max_length=15)
    partner_code: str | None = Field(default=None, max_length=15)
    analysis_code: str | None = Field(default=None, max_length=15)
    tax_code: str | None = Field(default=None, max_length=10)
    base_amount: Decimal
    tax_amount: Decimal = Decimal("0")
    total_amount: Decimal
    description: str | None = Field(default=None, max_length=200)

    @field_validator(
        "sub_account_code", "partner_code", "analysis_code", "tax_code",
        mode="before",
    )
    @classmethod
    def blank_code_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class JournalCreate(BaseModel):
    """A complete journal: header fields plus its lines."""
    journal_date: date
    description: str = Field(default="", max_length=500)
    lines: list[JournalLineCreate]


# Updates carry the same payload; the journal number comes from the path.
JournalUpdate = JournalCreate


# --- Response Schemas ---

class JournalLineResponse(BaseModel):
    line_number: int
    side: EntrySide
    account_code: str
    sub_account_code: str | None
    partner_code: str | None
    analysis_code: str | None
    tax_code: str | None
    base_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    line_description: str | None

    model_config = {"from_attributes": True}


class JournalResponse(BaseModel):
    journal_number: str
    journal_date: date
    description: str
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime
    details: list[JournalLineResponse]

    model_config = {"from_attributes": True}


class JournalSummaryResponse(BaseModel):
    """Header-only view used by list endpoints."""
    journal_number: str
    journal_date: date
    description: str
    total_amount: Decimal

    model_config = {"from_attributes": True}


class JournalListResponse(BaseModel):
    items: list[JournalSummaryResponse]
    total_count: int
    page: int
    limit: int


class LedgerIntegrityResponse(BaseModel):
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    is_balanced: bool
    unbalanced_journals: list[str]


# --- Journal number utilities ---

class JournalNumberPreview(BaseModel):
    journal_date: date
    next_number: str
    last_number: str | None


class SequenceIntegrityReport(BaseModel):
    """Comparison of one date's counter against the stored journals."""
    journal_date: date
    expected_count: int
    actual_count: int
    missing_numbers: list[str]
    unexpected_numbers: list[str]

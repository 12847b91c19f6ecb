"""
Pydantic schemas for the journal summary report.

A journal summary totals posted lines over a date range, grouped by
one dimension. Unlike the trial balance it has no opening balance
and no hierarchy rollup.
"""

import enum
from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from ledger_core.models.enums import AccountType
from ledger_core.schemas.trial_balance import ZERO


class SummaryGroupBy(str, enum.Enum):
    ACCOUNT = "account"
    PARTNER = "partner"
    ANALYSIS = "analysis"
    MONTH = "month"
    DAY = "day"


class JournalSummaryQuery(BaseModel):
    date_from: date
    date_to: date
    group_by: SummaryGroupBy = SummaryGroupBy.ACCOUNT
    account_type: AccountType | None = None


class JournalSummaryGroup(BaseModel):
    # Account, partner or analysis code, or the period (YYYY-MM or
    # YYYY-MM-DD). None collects lines without a partner or analysis code.
    key: str | None
    name: str | None = None
    debit_total: Decimal = ZERO
    credit_total: Decimal = ZERO
    # Debit-positive
    net_amount: Decimal = ZERO
    line_count: int = 0


class JournalSummaryTotal(BaseModel):
    debit_total: Decimal = ZERO
    credit_total: Decimal = ZERO
    line_count: int = 0


class JournalSummaryReport(BaseModel):
    date_from: date
    date_to: date
    group_by: SummaryGroupBy
    account_type: AccountType | None = None
    period_days: int
    groups: list[JournalSummaryGroup] = []
    total: JournalSummaryTotal = JournalSummaryTotal()
    item_count: int = 0

"""
Report API endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ledger_core.api.errors import http_error
from ledger_core.exceptions import LedgerError
from ledger_core.models.base import get_db
from ledger_core.models.enums import AccountType
from ledger_core.services.journal_summary_service import JournalSummaryService
from ledger_core.services.trial_balance_service import TrialBalanceService
from ledger_core.schemas.trial_balance import TrialBalanceQuery, TrialBalanceReport
from ledger_core.schemas.journal_summary import (
    JournalSummaryQuery,
    JournalSummaryReport,
    SummaryGroupBy,
)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/trial-balance", response_model=TrialBalanceReport)
def trial_balance(
    date_from: date,
    date_to: date,
    account_type: AccountType | None = None,
    include_zero_balance: bool = True,
    include_sub_accounts: bool = True,
    account_code_from: str | None = None,
    account_code_to: str | None = None,
    db: Session = Depends(get_db),
):
    """
    Opening balance, period movement and closing balance per account.

    Balances are computed from posted lines on every request.
    """
    service = TrialBalanceService(db)
    query = TrialBalanceQuery(
        date_from=date_from,
        date_to=date_to,
        account_type=account_type,
        include_zero_balance=include_zero_balance,
        include_sub_accounts=include_sub_accounts,
        account_code_from=account_code_from,
        account_code_to=account_code_to,
    )
    try:
        return service.compute(query)
    except LedgerError as e:
        raise http_error(e)


@router.get("/journal-summary", response_model=JournalSummaryReport)
def journal_summary(
    date_from: date,
    date_to: date,
    group_by: SummaryGroupBy = SummaryGroupBy.ACCOUNT,
    account_type: AccountType | None = None,
    db: Session = Depends(get_db),
):
    """Debit and credit totals of posted lines, grouped by one dimension."""
    service = JournalSummaryService(db)
    query = JournalSummaryQuery(
        date_from=date_from,
        date_to=date_to,
        group_by=group_by,
        account_type=account_type,
    )
    try:
        return service.summarize(query)
    except LedgerError as e:
        raise http_error(e)

"""
Pydantic schemas for the trial balance report.

All amounts are Decimal. Opening and closing balances on account and
subtotal rows are in the account's natural direction; on the grand
total they are debit-positive so a balanced ledger nets to zero.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from ledger_core.models.enums import AccountType


ZERO = Decimal("0.00")


class TrialBalanceQuery(BaseModel):
    date_from: date
    date_to: date
    account_type: AccountType | None = None
    include_zero_balance: bool = True
    include_sub_accounts: bool = True
    account_code_from: str | None = None
    account_code_to: str | None = None


class TrialBalanceRow(BaseModel):
    account_code: str
    account_name: str
    sub_account_code: str | None = None
    sub_account_name: str | None = None
    account_type: AccountType
    # 0 = account, 1 = sub-account
    level: int
    # Depth of the account in the chart tree, for indentation
    depth: int = 0
    is_summary: bool = False
    opening_balance: Decimal = ZERO
    debit_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    closing_balance: Decimal = ZERO

    def is_zero(self) -> bool:
        return not any((
            self.opening_balance,
            self.debit_amount,
            self.credit_amount,
            self.closing_balance,
        ))


class TrialBalanceTotal(BaseModel):
    """A subtotal for one account type, or the grand total when account_type is None."""
    account_type: AccountType | None = None
    opening_balance: Decimal = ZERO
    debit_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    closing_balance: Decimal = ZERO


class TrialBalanceSummary(BaseModel):
    total_opening_debit: Decimal = ZERO
    total_opening_credit: Decimal = ZERO
    total_debit_amount: Decimal = ZERO
    total_credit_amount: Decimal = ZERO
    total_closing_debit: Decimal = ZERO
    total_closing_credit: Decimal = ZERO
    is_balanced: bool = True


class TrialBalanceReport(BaseModel):
    date_from: date
    date_to: date
    rows: list[TrialBalanceRow]
    subtotals: list[TrialBalanceTotal]
    grand_total: TrialBalanceTotal
    summary: TrialBalanceSummary

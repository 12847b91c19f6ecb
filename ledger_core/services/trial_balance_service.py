"""
Trial balance aggregation.

For a date range [date_from, date_to] every account gets:
- opening balance: all postings dated before date_from
- period debit and credit: postings dated inside the range
- closing balance: opening plus the net period movement

Balances are expressed in the account's natural direction: assets
and expenses are positive when debits exceed credits, liabilities,
equity and revenue when credits exceed debits. Summary accounts show
the rolled-up movement of everything below them in the chart.

The report is read-only and computed fresh on every call.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import select, func, case, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_core.exceptions import AggregationError, InvalidRangeError
from ledger_core.models.account import SubAccount
from ledger_core.models.enums import ACCOUNT_TYPE_ORDER, AccountType, EntrySide
from ledger_core.models.journal import JournalHeader, JournalDetail, to_money
from ledger_core.schemas.trial_balance import (
    ZERO,
    TrialBalanceQuery,
    TrialBalanceReport,
    TrialBalanceRow,
    TrialBalanceSummary,
    TrialBalanceTotal,
)
from ledger_core.services.account_hierarchy import AccountHierarchy, AccountNode

logger = logging.getLogger(__name__)


@dataclass
class Movement:
    """Raw debit and credit sums for one account or sub-account."""
    opening_debit: Decimal = ZERO
    opening_credit: Decimal = ZERO
    period_debit: Decimal = ZERO
    period_credit: Decimal = ZERO

    def __add__(self, other: "Movement") -> "Movement":
        return Movement(
            self.opening_debit + other.opening_debit,
            self.opening_credit + other.opening_credit,
            self.period_debit + other.period_debit,
            self.period_credit + other.period_credit,
        )

    @property
    def opening_net(self) -> Decimal:
        """Debit-positive opening balance."""
        return self.opening_debit - self.opening_credit

    @property
    def closing_net(self) -> Decimal:
        """Debit-positive closing balance."""
        return self.opening_net + self.period_debit - self.period_credit

    def is_zero(self) -> bool:
        return not any((
            self.opening_debit, self.opening_credit,
            self.period_debit, self.period_credit,
        ))

    def balances(self, account_type: AccountType) -> tuple[Decimal, Decimal]:
        """(opening, closing) in the natural direction of account_type."""
        if account_type.is_debit_normal:
            return self.opening_net, self.closing_net
        return ZERO - self.opening_net, ZERO - self.closing_net


@dataclass
class _AccountBlock:
    """An account row with the sub-account rows shown beneath it."""
    row: TrialBalanceRow
    own: Movement
    sub_rows: list[TrialBalanceRow] = field(default_factory=list)


def _row(
    node: AccountNode,
    movement: Movement,
    depth: int,
    is_summary: bool,
    sub_account: SubAccount | None = None,
) -> TrialBalanceRow:
    opening, closing = movement.balances(node.account_type)
    return TrialBalanceRow(
        account_code=node.account_code,
        account_name=node.account_name,
        sub_account_code=sub_account.sub_account_code if sub_account else None,
        sub_account_name=sub_account.sub_account_name if sub_account else None,
        account_type=node.account_type,
        level=1 if sub_account else 0,
        depth=depth,
        is_summary=is_summary,
        opening_balance=opening,
        debit_amount=movement.period_debit,
        credit_amount=movement.period_credit,
        closing_balance=closing,
    )


class TrialBalanceService:
    """Computes trial balance reports from posted journal lines."""

    def __init__(self, db: Session):
        self.db = db

    def compute(self, query: TrialBalanceQuery) -> TrialBalanceReport:
        """
        Build the trial balance for query.date_from..query.date_to.

        Raises InvalidRangeError when date_from is after date_to and
        AggregationError when the database cannot be read. Either the
        complete report is returned or nothing is.
        """
        if query.date_from > query.date_to:
            raise InvalidRangeError(query.date_from, query.date_to)

        try:
            hierarchy = AccountHierarchy.load(self.db)
            movements = self._load_movements(query)
            sub_accounts = (
                self._load_sub_accounts() if query.include_sub_accounts else {}
            )
        except SQLAlchemyError as exc:
            logger.error(
                "trial_balance_failed",
                extra={
                    "date_from": query.date_from,
                    "date_to": query.date_to,
                    "error": str(exc),
                },
            )
            raise AggregationError("trial balance") from exc

        hierarchy.validate()

        own: dict[str, Movement] = {}
        by_sub_account: dict[tuple[str, str], Movement] = {}
        for (account_code, sub_code), movement in movements.items():
            own[account_code] = own.get(account_code, Movement()) + movement
            if sub_code is not None:
                by_sub_account[(account_code, sub_code)] = movement

        rolled: dict[str, Movement] = {}
        for account_code, movement in own.items():
            if account_code not in hierarchy:
                continue
            for code in (account_code, *hierarchy.ancestors(account_code)):
                rolled[code] = rolled.get(code, Movement()) + movement

        blocks = []
        for node, depth in hierarchy.walk():
            if not self._selected(node, query):
                continue
            movement = rolled.get(node.account_code, Movement())
            if not node.is_active and movement.is_zero():
                continue
            is_summary = bool(hierarchy.children(node.account_code))
            block = _AccountBlock(
                row=_row(node, movement, depth, is_summary),
                own=own.get(node.account_code, Movement()),
            )
            for sub_account in sub_accounts.get(node.account_code, []):
                sub_movement = by_sub_account.get(
                    (node.account_code, sub_account.sub_account_code), Movement()
                )
                if not sub_account.is_active and sub_movement.is_zero():
                    continue
                block.sub_rows.append(
                    _row(node, sub_movement, depth + 1, False, sub_account)
                )
            blocks.append(block)

        if not query.include_zero_balance:
            blocks = self._drop_zero_rows(blocks)

        blocks.sort(key=lambda b: (
            ACCOUNT_TYPE_ORDER[b.row.account_type], b.row.account_code,
        ))

        rows = []
        for block in blocks:
            rows.append(block.row)
            rows.extend(block.sub_rows)

        report = TrialBalanceReport(
            date_from=query.date_from,
            date_to=query.date_to,
            rows=rows,
            subtotals=self._subtotals(blocks),
            grand_total=self._grand_total(blocks),
            summary=self._summary(blocks),
        )
        logger.info(
            "trial_balance_computed",
            extra={
                "date_from": query.date_from,
                "date_to": query.date_to,
                "row_count": len(rows),
            },
        )
        return report

    # --- Loading ---

    def _load_movements(
        self, query: TrialBalanceQuery
    ) -> dict[tuple[str, str | None], Movement]:
        """One grouped query over every line dated on or before date_to."""
        before = JournalHeader.journal_date < query.date_from
        within = JournalHeader.journal_date >= query.date_from

        def side_sum(condition, side: EntrySide):
            return func.coalesce(func.sum(case(
                (and_(condition, JournalDetail.side == side),
                 JournalDetail.total_amount),
                else_=0,
            )), 0)

        rows = self.db.execute(
            select(
                JournalDetail.account_code,
                JournalDetail.sub_account_code,
                side_sum(before, EntrySide.DEBIT),
                side_sum(before, EntrySide.CREDIT),
                side_sum(within, EntrySide.DEBIT),
                side_sum(within, EntrySide.CREDIT),
            )
            .join(
                JournalHeader,
                JournalHeader.journal_number == JournalDetail.journal_number,
            )
            .where(JournalHeader.journal_date <= query.date_to)
            .group_by(JournalDetail.account_code, JournalDetail.sub_account_code)
        ).all()

        return {
            (account_code, sub_code): Movement(
                to_money(opening_debit),
                to_money(opening_credit),
                to_money(period_debit),
                to_money(period_credit),
            )
            for (account_code, sub_code, opening_debit, opening_credit,
                 period_debit, period_credit) in rows
        }

    def _load_sub_accounts(self) -> dict[str, list[SubAccount]]:
        sub_accounts = self.db.execute(
            select(SubAccount).order_by(
                SubAccount.account_code,
                SubAccount.sort_order,
                SubAccount.sub_account_code,
            )
        ).scalars().all()
        grouped: dict[str, list[SubAccount]] = {}
        for sub_account in sub_accounts:
            grouped.setdefault(sub_account.account_code, []).append(sub_account)
        return grouped

    # --- Filtering ---

    @staticmethod
    def _selected(node: AccountNode, query: TrialBalanceQuery) -> bool:
        if query.account_type is not None and node.account_type != query.account_type:
            return False
        if query.account_code_from and node.account_code < query.account_code_from:
            return False
        if query.account_code_to and node.account_code > query.account_code_to:
            return False
        return True

    @staticmethod
    def _drop_zero_rows(blocks: list[_AccountBlock]) -> list[_AccountBlock]:
        """
        Remove rows whose four amounts are all zero. An account row
        stays while any of its sub-account rows does.
        """
        kept = []
        for block in blocks:
            block.sub_rows = [r for r in block.sub_rows if not r.is_zero()]
            if block.sub_rows or not block.row.is_zero():
                kept.append(block)
        return kept

    # --- Totals ---

    @staticmethod
    def _subtotals(blocks: list[_AccountBlock]) -> list[TrialBalanceTotal]:
        """
        One subtotal per account type present in the report.

        Built from each account's own postings, so summary rows and
        sub-account rows never count twice.
        """
        by_type: dict[AccountType, Movement] = {}
        for block in blocks:
            account_type = block.row.account_type
            by_type[account_type] = by_type.get(account_type, Movement()) + block.own

        subtotals = []
        for account_type in sorted(by_type, key=ACCOUNT_TYPE_ORDER.__getitem__):
            movement = by_type[account_type]
            opening, closing = movement.balances(account_type)
            subtotals.append(TrialBalanceTotal(
                account_type=account_type,
                opening_balance=opening,
                debit_amount=movement.period_debit,
                credit_amount=movement.period_credit,
                closing_balance=closing,
            ))
        return subtotals

    @staticmethod
    def _grand_total(blocks: list[_AccountBlock]) -> TrialBalanceTotal:
        """Debit-positive totals, so a balanced ledger nets to zero."""
        total = sum((block.own for block in blocks), Movement())
        return TrialBalanceTotal(
            opening_balance=total.opening_net,
            debit_amount=total.period_debit,
            credit_amount=total.period_credit,
            closing_balance=total.closing_net,
        )

    @staticmethod
    def _summary(blocks: list[_AccountBlock]) -> TrialBalanceSummary:
        summary = TrialBalanceSummary()
        for block in blocks:
            movement = block.own
            if movement.opening_net >= 0:
                summary.total_opening_debit += movement.opening_net
            else:
                summary.total_opening_credit -= movement.opening_net
            if movement.closing_net >= 0:
                summary.total_closing_debit += movement.closing_net
            else:
                summary.total_closing_credit -= movement.closing_net
            summary.total_debit_amount += movement.period_debit
            summary.total_credit_amount += movement.period_credit

        summary.is_balanced = (
            summary.total_opening_debit == summary.total_opening_credit
            and summary.total_debit_amount == summary.total_credit_amount
            and summary.total_closing_debit == summary.total_closing_credit
        )
        return summary

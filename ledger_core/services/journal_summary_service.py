"""
Journal summary aggregation.

Totals posted lines dated inside [date_from, date_to] by account,
partner, analysis code, month or day, optionally restricted to one
account type. Every group reports its debit total, credit total,
debit-positive net and line count.

Like the trial balance, the report is read-only and computed fresh
on every call.
"""

import logging
from datetime import date

from sqlalchemy import select, func, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_core.exceptions import AggregationError, InvalidRangeError
from ledger_core.models.account import Account
from ledger_core.models.enums import EntrySide
from ledger_core.models.journal import JournalHeader, JournalDetail, to_money
from ledger_core.models.reference import Partner, AnalysisCode
from ledger_core.schemas.journal_summary import (
    JournalSummaryGroup,
    JournalSummaryQuery,
    JournalSummaryReport,
    JournalSummaryTotal,
    SummaryGroupBy,
)

logger = logging.getLogger(__name__)

# Longer ranges are rejected; about three years of lines
MAX_RANGE_DAYS = 1095


class JournalSummaryService:
    """Aggregates posted journal lines by one dimension."""

    def __init__(self, db: Session):
        self.db = db

    def summarize(self, query: JournalSummaryQuery) -> JournalSummaryReport:
        """
        Build the summary for query.date_from..query.date_to.

        Raises InvalidRangeError when the range is reversed or longer
        than MAX_RANGE_DAYS, and AggregationError when the database
        cannot be read.
        """
        if query.date_from > query.date_to:
            raise InvalidRangeError(query.date_from, query.date_to)
        period_days = (query.date_to - query.date_from).days
        if period_days > MAX_RANGE_DAYS:
            raise InvalidRangeError(
                query.date_from, query.date_to,
                f"range of {period_days} days exceeds {MAX_RANGE_DAYS} days",
            )

        try:
            rows = self._load_groups(query)
        except SQLAlchemyError as exc:
            logger.error(
                "journal_summary_failed",
                extra={
                    "date_from": query.date_from,
                    "date_to": query.date_to,
                    "group_by": query.group_by.value,
                    "error": str(exc),
                },
            )
            raise AggregationError("journal summary") from exc

        groups: dict[str | None, JournalSummaryGroup] = {}
        for key, name, debits, credits, line_count in rows:
            if isinstance(key, date):
                key = _period_key(key, query.group_by)
            group = groups.setdefault(key, JournalSummaryGroup(key=key, name=name))
            group.debit_total += to_money(debits)
            group.credit_total += to_money(credits)
            group.line_count += line_count

        total = JournalSummaryTotal()
        for group in groups.values():
            group.net_amount = group.debit_total - group.credit_total
            total.debit_total += group.debit_total
            total.credit_total += group.credit_total
            total.line_count += group.line_count

        # Lines without a partner or analysis code sort last
        ordered = sorted(
            groups.values(), key=lambda g: (g.key is None, g.key or "")
        )
        logger.info(
            "journal_summary_computed",
            extra={
                "date_from": query.date_from,
                "date_to": query.date_to,
                "group_by": query.group_by.value,
                "group_count": len(ordered),
            },
        )
        return JournalSummaryReport(
            date_from=query.date_from,
            date_to=query.date_to,
            group_by=query.group_by,
            account_type=query.account_type,
            period_days=period_days,
            groups=ordered,
            total=total,
            item_count=len(ordered),
        )

    def _load_groups(self, query: JournalSummaryQuery) -> list[tuple]:
        """
        One grouped query returning (key, name, debits, credits, lines).

        Month and day summaries group by journal date here; months
        are folded together by the caller.
        """
        def side_sum(side: EntrySide):
            return func.coalesce(func.sum(case(
                (JournalDetail.side == side, JournalDetail.total_amount),
                else_=0,
            )), 0)

        group_by = query.group_by
        if group_by == SummaryGroupBy.ACCOUNT:
            key, name = JournalDetail.account_code, Account.account_name
        elif group_by == SummaryGroupBy.PARTNER:
            key, name = JournalDetail.partner_code, Partner.partner_name
        elif group_by == SummaryGroupBy.ANALYSIS:
            key, name = JournalDetail.analysis_code, AnalysisCode.analysis_name
        else:
            key, name = JournalHeader.journal_date, None

        columns = [key, name] if name is not None else [key]
        statement = (
            select(
                *columns,
                side_sum(EntrySide.DEBIT),
                side_sum(EntrySide.CREDIT),
                func.count(),
            )
            .select_from(JournalDetail)
            .join(
                JournalHeader,
                JournalHeader.journal_number == JournalDetail.journal_number,
            )
            .join(Account, Account.account_code == JournalDetail.account_code)
            .where(
                JournalHeader.journal_date >= query.date_from,
                JournalHeader.journal_date <= query.date_to,
            )
            .group_by(*columns)
        )
        if group_by == SummaryGroupBy.PARTNER:
            statement = statement.outerjoin(
                Partner, Partner.partner_code == JournalDetail.partner_code
            )
        elif group_by == SummaryGroupBy.ANALYSIS:
            statement = statement.outerjoin(
                AnalysisCode,
                AnalysisCode.analysis_code == JournalDetail.analysis_code,
            )
        if query.account_type is not None:
            statement = statement.where(Account.account_type == query.account_type)

        rows = self.db.execute(statement).all()
        if name is None:
            return [(row[0], None, *row[1:]) for row in rows]
        return [tuple(row) for row in rows]


def _period_key(journal_date: date, group_by: SummaryGroupBy) -> str:
    if group_by == SummaryGroupBy.MONTH:
        return f"{journal_date:%Y-%m}"
    return journal_date.isoformat()

"""
Journal service: the posting engine.

This service enforces the ledger's rules:
1. Every journal balances (debit totals == credit totals)
2. Every line reconciles (base + tax == total)
3. Every referenced account, sub-account, partner, analysis
   code and tax code exists and is active; accounts are postable
4. Header and lines are written as one all-or-nothing unit

Validation always completes before the first write, and a journal
number is only allocated once validation has passed, so a rejected
journal never consumes a number. Each public write method is its own
transaction: it commits on success and rolls back on any failure.
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select, func, or_, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ledger_core.config import get_settings
from ledger_core.exceptions import AggregationError, JournalNotFoundError
from ledger_core.models.base import atomic
from ledger_core.models.enums import EntrySide
from ledger_core.models.journal import JournalHeader, JournalDetail, to_money
from ledger_core.schemas.journal import (
    JournalCreate,
    JournalLineCreate,
    JournalUpdate,
)
from ledger_core.services.journal_validator import JournalValidator, line_totals
from ledger_core.services.sequence_allocator import SequenceAllocator

logger = logging.getLogger(__name__)


def build_details(
    journal_number: str, lines: list[JournalLineCreate]
) -> list[JournalDetail]:
    """Turn request lines into rows numbered 1..n in request order."""
    return [
        JournalDetail(
            journal_number=journal_number,
            line_number=line_number,
            side=line.side,
            account_code=line.account_code,
            sub_account_code=line.sub_account_code,
            partner_code=line.partner_code,
            analysis_code=line.analysis_code,
            tax_code=line.tax_code,
            base_amount=line.base_amount,
            tax_amount=line.tax_amount,
            total_amount=line.total_amount,
            line_description=line.description,
        )
        for line_number, line in enumerate(lines, start=1)
    ]


class JournalService:
    """
    All journal writes pass through this service.

    The service takes a database session as a constructor argument
    and owns the transaction boundary of each write it performs.
    """

    def __init__(self, db: Session, allocator: SequenceAllocator | None = None):
        settings = get_settings()
        self.db = db
        self.allocator = allocator or SequenceAllocator(
            db, max_retries=settings.SEQUENCE_MAX_RETRIES
        )
        self.validator = JournalValidator(db, max_lines=settings.MAX_JOURNAL_LINES)

    def create_journal(self, request: JournalCreate) -> JournalHeader:
        """
        Validate and post a new journal.

        Raises ValidationError, ReferenceNotFoundError or
        UnbalancedEntryError before anything is written; a
        SequenceError or PersistenceError means the transaction
        was rolled back and no journal exists.
        """
        debit_total, _ = line_totals(request.lines)

        with atomic(self.db, "create_journal"):
            self.validator.validate(request)
            journal_number = self.allocator.next_number(request.journal_date)
            header = JournalHeader(
                journal_number=journal_number,
                journal_date=request.journal_date,
                description=request.description,
                total_amount=debit_total,
            )
            header.details = build_details(journal_number, request.lines)
            self.db.add(header)
            self.db.flush()

        logger.info(
            "journal_created",
            extra={
                "journal_number": journal_number,
                "journal_date": request.journal_date,
                "line_count": len(request.lines),
                "total_amount": debit_total,
            },
        )
        return header

    def update_journal(
        self, journal_number: str, request: JournalUpdate
    ) -> JournalHeader:
        """
        Replace a journal's date, description and lines.

        The journal number never changes. All existing lines are
        deleted and the new set inserted in the same transaction
        as the header update.
        """
        debit_total, _ = line_totals(request.lines)

        with atomic(self.db, "update_journal"):
            header = self._get_header(journal_number)
            self.validator.validate(request)

            # Flush the deletes first so the new lines can reuse
            # the same (journal_number, line_number) keys.
            header.details.clear()
            self.db.flush()

            header.journal_date = request.journal_date
            header.description = request.description
            header.total_amount = debit_total
            header.details.extend(build_details(journal_number, request.lines))
            self.db.flush()

        logger.info(
            "journal_updated",
            extra={
                "journal_number": journal_number,
                "line_count": len(request.lines),
                "total_amount": debit_total,
            },
        )
        return header

    def delete_journal(self, journal_number: str) -> None:
        """
        Physically delete a journal and its lines.

        Whether a journal may be deleted (attachments, closed
        periods, approvals) is decided by the caller.
        """
        with atomic(self.db, "delete_journal"):
            header = self._get_header(journal_number)
            self.db.delete(header)
            self.db.flush()

        logger.info("journal_deleted", extra={"journal_number": journal_number})

    def get_journal(self, journal_number: str) -> JournalHeader:
        """Return the journal with its lines in line order."""
        header = self.db.execute(
            select(JournalHeader)
            .options(selectinload(JournalHeader.details))
            .where(JournalHeader.journal_number == journal_number)
        ).scalar_one_or_none()
        if header is None:
            raise JournalNotFoundError(journal_number)
        return header

    def _get_header(self, journal_number: str) -> JournalHeader:
        header = self.db.get(JournalHeader, journal_number)
        if header is None:
            raise JournalNotFoundError(journal_number)
        return header

    # --- Queries ---

    def list_journals(
        self,
        page: int = 1,
        limit: int = 20,
        search: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        account_code: str | None = None,
        partner_code: str | None = None,
    ) -> tuple[list[JournalHeader], int]:
        """
        One page of journal headers, newest first, plus the total count.

        search matches the journal number or description. account_code
        and partner_code keep journals having at least one such line.
        """
        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                JournalHeader.journal_number.ilike(pattern),
                JournalHeader.description.ilike(pattern),
            ))
        if date_from is not None:
            conditions.append(JournalHeader.journal_date >= date_from)
        if date_to is not None:
            conditions.append(JournalHeader.journal_date <= date_to)
        if account_code or partner_code:
            line_filter = select(JournalDetail.journal_number)
            if account_code:
                line_filter = line_filter.where(
                    JournalDetail.account_code == account_code
                )
            if partner_code:
                line_filter = line_filter.where(
                    JournalDetail.partner_code == partner_code
                )
            conditions.append(JournalHeader.journal_number.in_(line_filter))

        try:
            total_count = self.db.execute(
                select(func.count()).select_from(JournalHeader).where(*conditions)
            ).scalar_one()

            journals = self.db.execute(
                select(JournalHeader)
                .where(*conditions)
                .order_by(
                    JournalHeader.journal_date.desc(),
                    JournalHeader.journal_number.desc(),
                )
                .offset((page - 1) * limit)
                .limit(limit)
            ).scalars().all()
        except SQLAlchemyError as exc:
            logger.error("journal_list_failed", extra={"error": str(exc)})
            raise AggregationError("journal list") from exc
        return list(journals), total_count

    def check_integrity(self) -> dict:
        """
        Verify the double-entry invariant across the whole ledger.

        Returns the ledger-wide debit and credit totals and the
        numbers of any individual journals whose lines do not balance.
        """
        debit_sum = func.coalesce(func.sum(case(
            (JournalDetail.side == EntrySide.DEBIT, JournalDetail.total_amount),
            else_=0,
        )), 0)
        credit_sum = func.coalesce(func.sum(case(
            (JournalDetail.side == EntrySide.CREDIT, JournalDetail.total_amount),
            else_=0,
        )), 0)

        try:
            rows = self.db.execute(
                select(JournalDetail.journal_number, debit_sum, credit_sum)
                .group_by(JournalDetail.journal_number)
                .order_by(JournalDetail.journal_number)
            ).all()
        except SQLAlchemyError as exc:
            logger.error("ledger_integrity_failed", extra={"error": str(exc)})
            raise AggregationError("ledger integrity") from exc

        total_debits = Decimal("0")
        total_credits = Decimal("0")
        unbalanced = []
        for journal_number, debits, credits in rows:
            debits = to_money(debits)
            credits = to_money(credits)
            total_debits += debits
            total_credits += credits
            if debits != credits:
                unbalanced.append(journal_number)

        return {
            "total_debits": total_debits,
            "total_credits": total_credits,
            "difference": total_debits - total_credits,
            "is_balanced": total_debits == total_credits and not unbalanced,
            "unbalanced_journals": unbalanced,
        }

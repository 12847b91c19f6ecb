"""
Sequence allocator: journal numbers scoped to a posting date.

A journal number is the posting date as YYYYMMDD followed by a
7-digit zero-padded counter, e.g. 202401150000001. The counter for a
date lives in one journal_number_sequences row.

Allocation increments that row in place with a single UPDATE inside
the caller's transaction. The UPDATE holds the row lock until the
caller commits or rolls back, so concurrent callers for the same
date are serialized and a rolled-back posting gives its number back.
Reading MAX(journal_number) + 1 from journal_headers is never used.

The first posting for a date inserts the counter row. Two callers
can race on that insert; the loser retries, up to max_retries times.
"""

import logging
from datetime import date, datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_core.exceptions import (
    AggregationError,
    SequenceConflictError,
    SequenceExhaustedError,
    SequenceUnavailableError,
)
from ledger_core.models.journal import JournalHeader
from ledger_core.models.journal_sequence import JournalNumberSequence
from ledger_core.schemas.journal import SequenceIntegrityReport

logger = logging.getLogger(__name__)

SEQUENCE_WIDTH = 7
MAX_SEQUENCE = 10 ** SEQUENCE_WIDTH - 1
JOURNAL_NUMBER_LENGTH = 8 + SEQUENCE_WIDTH
DEFAULT_MAX_RETRIES = 5


def format_journal_number(journal_date: date, sequence: int) -> str:
    return f"{journal_date:%Y%m%d}{sequence:0{SEQUENCE_WIDTH}d}"


def parse_journal_number(journal_number: str) -> tuple[date, int]:
    """
    Split a journal number into its date and counter.

    Raises ValueError for anything that is not 15 digits with a
    valid calendar date prefix.
    """
    if len(journal_number) != JOURNAL_NUMBER_LENGTH or not journal_number.isdigit():
        raise ValueError(f"Malformed journal number: {journal_number!r}")
    journal_date = datetime.strptime(journal_number[:8], "%Y%m%d").date()
    return journal_date, int(journal_number[8:])


class SequenceAllocator:
    """
    Issues journal numbers inside the caller's transaction.

    The allocator never commits. A number returned by next_number()
    is only consumed once the caller's transaction commits.
    """

    def __init__(self, db: Session, max_retries: int = DEFAULT_MAX_RETRIES):
        self.db = db
        self.max_retries = max_retries

    def next_number(self, journal_date: date) -> str:
        """
        Allocate the next journal number for journal_date.

        Raises SequenceConflictError after max_retries lost races,
        SequenceExhaustedError when the counter would exceed
        SEQUENCE_WIDTH digits, and SequenceUnavailableError on any
        other storage failure. No number is returned in those cases.
        """
        for attempt in range(1, self.max_retries + 1):
            try:
                sequence = self._increment(journal_date)
            except IntegrityError:
                logger.warning(
                    "sequence_insert_race",
                    extra={"journal_date": journal_date, "attempt": attempt},
                )
                continue
            except SQLAlchemyError as exc:
                logger.error(
                    "sequence_unavailable",
                    extra={"journal_date": journal_date, "error": str(exc)},
                )
                raise SequenceUnavailableError(journal_date) from exc

            if sequence > MAX_SEQUENCE:
                raise SequenceExhaustedError(journal_date, MAX_SEQUENCE)

            journal_number = format_journal_number(journal_date, sequence)
            logger.debug(
                "sequence_allocated",
                extra={"journal_date": journal_date, "journal_number": journal_number},
            )
            return journal_number

        raise SequenceConflictError(journal_date, self.max_retries)

    def _increment(self, journal_date: date) -> int:
        result = self.db.execute(
            update(JournalNumberSequence)
            .where(JournalNumberSequence.journal_date == journal_date)
            .values(
                last_sequence_number=JournalNumberSequence.last_sequence_number + 1,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            return self.db.execute(
                select(JournalNumberSequence.last_sequence_number)
                .where(JournalNumberSequence.journal_date == journal_date)
            ).scalar_one()

        # First journal for this date. The savepoint keeps a lost
        # insert race from aborting the caller's transaction.
        savepoint = self.db.begin_nested()
        try:
            self.db.add(JournalNumberSequence(
                journal_date=journal_date,
                last_sequence_number=1,
            ))
            self.db.flush()
        except IntegrityError:
            savepoint.rollback()
            raise
        savepoint.commit()
        return 1

    # --- Read-only helpers ---

    def last_number_for_date(self, journal_date: date) -> str | None:
        """The most recently issued number for a date, or None."""
        last = self.db.execute(
            select(JournalNumberSequence.last_sequence_number)
            .where(JournalNumberSequence.journal_date == journal_date)
        ).scalar_one_or_none()
        if not last:
            return None
        return format_journal_number(journal_date, last)

    def preview_next_number(self, journal_date: date) -> str:
        """
        The number the next posting would receive if nothing else
        posts first. Nothing is reserved.
        """
        last = self.db.execute(
            select(JournalNumberSequence.last_sequence_number)
            .where(JournalNumberSequence.journal_date == journal_date)
        ).scalar_one_or_none()
        return format_journal_number(journal_date, (last or 0) + 1)

    def number_exists(self, journal_number: str) -> bool:
        return self.db.get(JournalHeader, journal_number) is not None

    def check_integrity(
        self, journal_date: date | None = None
    ) -> list[SequenceIntegrityReport]:
        """
        Compare each date's counter with the journals actually stored.

        Missing numbers are expected after deletes. Unexpected numbers
        (stored journals above the counter, or whose prefix does not
        match the date) point at writes that bypassed the allocator.
        """
        try:
            return self._integrity_reports(journal_date)
        except SQLAlchemyError as exc:
            logger.error("sequence_integrity_failed", extra={"error": str(exc)})
            raise AggregationError("sequence integrity") from exc

    def _integrity_reports(
        self, journal_date: date | None
    ) -> list[SequenceIntegrityReport]:
        query = select(JournalNumberSequence).order_by(
            JournalNumberSequence.journal_date
        )
        if journal_date is not None:
            query = query.where(JournalNumberSequence.journal_date == journal_date)
        counters = self.db.execute(query).scalars().all()

        reports = []
        for counter in counters:
            prefix = f"{counter.journal_date:%Y%m%d}"
            stored = set(self.db.execute(
                select(JournalHeader.journal_number)
                .where(JournalHeader.journal_number.like(f"{prefix}%"))
            ).scalars().all())
            actual_count = self.db.execute(
                select(func.count())
                .select_from(JournalHeader)
                .where(JournalHeader.journal_date == counter.journal_date)
            ).scalar_one()

            missing = [
                number for number in (
                    format_journal_number(counter.journal_date, n)
                    for n in range(1, counter.last_sequence_number + 1)
                )
                if number not in stored
            ]
            reports.append(SequenceIntegrityReport(
                journal_date=counter.journal_date,
                expected_count=counter.last_sequence_number,
                actual_count=actual_count,
                missing_numbers=missing,
                unexpected_numbers=[
                    number for number in sorted(stored)
                    if not self._issued_by(counter, number)
                ],
            ))
        return reports

    @staticmethod
    def _issued_by(counter: JournalNumberSequence, journal_number: str) -> bool:
        """True when journal_number is one the counter could have issued."""
        try:
            journal_date, sequence = parse_journal_number(journal_number)
        except ValueError:
            return False
        return (
            journal_date == counter.journal_date
            and 1 <= sequence <= counter.last_sequence_number
        )

"""
Tests for journal number allocation.

Tests cover:
- Number format and parsing
- Per-date counters and rollback behaviour
- Bounded retries and exhaustion
- Concurrent allocation never producing duplicates
- Preview and integrity helpers
"""

import threading
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from ledger_core.exceptions import (
    AggregationError,
    SequenceConflictError,
    SequenceExhaustedError,
    SequenceUnavailableError,
)
from ledger_core.models.enums import EntrySide
from ledger_core.models.journal import JournalHeader
from ledger_core.models.journal_sequence import JournalNumberSequence
from ledger_core.schemas.journal import JournalCreate, JournalLineCreate
from ledger_core.services.journal_service import JournalService
from ledger_core.services.sequence_allocator import (
    MAX_SEQUENCE,
    SequenceAllocator,
    format_journal_number,
    parse_journal_number,
)


JAN_15 = date(2024, 1, 15)
JAN_16 = date(2024, 1, 16)


def simple_journal(journal_date=JAN_15, amount="100.00"):
    return JournalCreate(
        journal_date=journal_date,
        description="Cash sale",
        lines=[
            JournalLineCreate(side=EntrySide.DEBIT, account_code="1110",
                              base_amount=Decimal(amount),
                              total_amount=Decimal(amount)),
            JournalLineCreate(side=EntrySide.CREDIT, account_code="4110",
                              base_amount=Decimal(amount),
                              total_amount=Decimal(amount)),
        ],
    )


# --- Format ---

class TestJournalNumberFormat:

    def test_format_is_date_plus_seven_digits(self):
        assert format_journal_number(JAN_15, 1) == "202401150000001"
        assert format_journal_number(JAN_15, 1234567) == "202401151234567"

    def test_parse_splits_date_and_counter(self):
        assert parse_journal_number("202401150000042") == (JAN_15, 42)

    @pytest.mark.parametrize("bad", [
        "20240115000001",      # too short
        "2024011500000001",    # too long
        "2024011A0000001",     # not digits
        "202413150000001",     # month 13
    ])
    def test_parse_rejects_malformed_numbers(self, bad):
        with pytest.raises(ValueError):
            parse_journal_number(bad)


# --- Allocation ---

class TestNextNumber:

    def test_first_number_for_a_date_is_one(self, db_session):
        allocator = SequenceAllocator(db_session)
        assert allocator.next_number(JAN_15) == "202401150000001"

    def test_numbers_increase_within_a_date(self, db_session):
        allocator = SequenceAllocator(db_session)
        first = allocator.next_number(JAN_15)
        second = allocator.next_number(JAN_15)
        db_session.commit()

        assert first == "202401150000001"
        assert second == "202401150000002"

    def test_each_date_has_its_own_counter(self, db_session):
        allocator = SequenceAllocator(db_session)
        allocator.next_number(JAN_15)
        allocator.next_number(JAN_15)

        assert allocator.next_number(JAN_16) == "202401160000001"

    def test_rolled_back_allocation_gives_number_back(self, db_session):
        allocator = SequenceAllocator(db_session)
        allocator.next_number(JAN_15)
        db_session.commit()

        allocator.next_number(JAN_15)
        db_session.rollback()

        assert allocator.next_number(JAN_15) == "202401150000002"

    def test_exhausted_counter_raises(self, db_session):
        db_session.add(JournalNumberSequence(
            journal_date=JAN_15, last_sequence_number=MAX_SEQUENCE,
        ))
        db_session.commit()

        allocator = SequenceAllocator(db_session)
        with pytest.raises(SequenceExhaustedError) as exc_info:
            allocator.next_number(JAN_15)
        assert exc_info.value.limit == MAX_SEQUENCE
        assert exc_info.value.code == "SEQUENCE_EXHAUSTED"

    def test_repeated_insert_races_give_up_after_max_retries(
        self, db_session, monkeypatch
    ):
        allocator = SequenceAllocator(db_session, max_retries=3)
        calls = []

        def always_collide(journal_date):
            calls.append(journal_date)
            raise IntegrityError("INSERT", {}, Exception("duplicate key"))

        monkeypatch.setattr(allocator, "_increment", always_collide)

        with pytest.raises(SequenceConflictError) as exc_info:
            allocator.next_number(JAN_15)
        assert exc_info.value.attempts == 3
        assert len(calls) == 3

    def test_one_lost_race_is_retried(self, db_session, monkeypatch):
        allocator = SequenceAllocator(db_session)
        real_increment = allocator._increment
        calls = []

        def collide_once(journal_date):
            calls.append(journal_date)
            if len(calls) == 1:
                raise IntegrityError("INSERT", {}, Exception("duplicate key"))
            return real_increment(journal_date)

        monkeypatch.setattr(allocator, "_increment", collide_once)

        assert allocator.next_number(JAN_15) == "202401150000001"
        assert len(calls) == 2

    def test_storage_failure_is_unavailable(self, db_session, monkeypatch):
        allocator = SequenceAllocator(db_session)

        def broken(journal_date):
            raise OperationalError("UPDATE", {}, Exception("disk I/O error"))

        monkeypatch.setattr(allocator, "_increment", broken)

        with pytest.raises(SequenceUnavailableError) as exc_info:
            allocator.next_number(JAN_15)
        assert exc_info.value.journal_date == JAN_15


class TestConcurrentAllocation:

    def test_concurrent_postings_never_share_a_number(
        self, chart, session_factory
    ):
        workers = 8
        numbers = []
        errors = []
        lock = threading.Lock()
        start = threading.Barrier(workers)

        def post():
            session = session_factory()
            try:
                start.wait()
                header = JournalService(session).create_journal(simple_journal())
                with lock:
                    numbers.append(header.journal_number)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                session.close()

        threads = [threading.Thread(target=post) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(set(numbers)) == workers
        assert sorted(numbers) == [
            format_journal_number(JAN_15, n) for n in range(1, workers + 1)
        ]


# --- Read-only helpers ---

class TestHelpers:

    def test_preview_does_not_consume(self, db_session):
        allocator = SequenceAllocator(db_session)
        assert allocator.preview_next_number(JAN_15) == "202401150000001"
        assert allocator.preview_next_number(JAN_15) == "202401150000001"
        assert allocator.last_number_for_date(JAN_15) is None

    def test_preview_follows_counter(self, db_session):
        allocator = SequenceAllocator(db_session)
        allocator.next_number(JAN_15)
        allocator.next_number(JAN_15)
        db_session.commit()

        assert allocator.last_number_for_date(JAN_15) == "202401150000002"
        assert allocator.preview_next_number(JAN_15) == "202401150000003"

    def test_number_exists(self, db_session, chart):
        header = JournalService(db_session).create_journal(simple_journal())
        allocator = SequenceAllocator(db_session)

        assert allocator.number_exists(header.journal_number) is True
        assert allocator.number_exists("202401159999999") is False

    def test_integrity_reports_gaps_from_deleted_journals(self, db_session, chart):
        service = JournalService(db_session)
        for _ in range(3):
            service.create_journal(simple_journal())
        service.delete_journal("202401150000002")

        reports = SequenceAllocator(db_session).check_integrity(JAN_15)

        assert len(reports) == 1
        report = reports[0]
        assert report.expected_count == 3
        assert report.actual_count == 2
        assert report.missing_numbers == ["202401150000002"]
        assert report.unexpected_numbers == []

    def test_integrity_covers_every_date(self, db_session, chart):
        service = JournalService(db_session)
        service.create_journal(simple_journal(JAN_15))
        service.create_journal(simple_journal(JAN_16))

        reports = SequenceAllocator(db_session).check_integrity()

        assert [r.journal_date for r in reports] == [JAN_15, JAN_16]
        assert all(not r.missing_numbers for r in reports)

    def test_integrity_flags_numbers_the_counter_never_issued(
        self, db_session, chart
    ):
        service = JournalService(db_session)
        for _ in range(2):
            service.create_journal(simple_journal())
        for number in ("202401150000009", "20240115000001X"):
            db_session.add(JournalHeader(
                journal_number=number, journal_date=JAN_15,
                description="Imported", total_amount=Decimal("1.00"),
            ))
        db_session.commit()

        report = SequenceAllocator(db_session).check_integrity(JAN_15)[0]

        assert report.missing_numbers == []
        assert report.unexpected_numbers == ["202401150000009", "20240115000001X"]

    def test_integrity_storage_failure_raises_aggregation_error(
        self, db_session, monkeypatch
    ):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        monkeypatch.setattr(db_session, "execute", broken)

        with pytest.raises(AggregationError):
            SequenceAllocator(db_session).check_integrity()

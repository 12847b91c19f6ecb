"""
Journal API endpoints.

Thin HTTP layer over JournalService and SequenceAllocator. Each
journal write is its own transaction inside the service, so these
handlers never commit; they only translate ledger errors into
HTTP responses.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ledger_core.api.errors import http_error
from ledger_core.exceptions import LedgerError
from ledger_core.models.base import get_db
from ledger_core.services.journal_service import JournalService
from ledger_core.services.sequence_allocator import SequenceAllocator
from ledger_core.schemas.journal import (
    JournalCreate,
    JournalUpdate,
    JournalResponse,
    JournalSummaryResponse,
    JournalListResponse,
    JournalNumberPreview,
    LedgerIntegrityResponse,
    SequenceIntegrityReport,
)

router = APIRouter(prefix="/journals", tags=["Journals"])
numbers_router = APIRouter(prefix="/journal-numbers", tags=["Journal Numbers"])


@router.post("", response_model=JournalResponse, status_code=201)
def create_journal(
    request: JournalCreate,
    db: Session = Depends(get_db),
):
    """
    Post a new journal.

    All lines are validated before anything is written. A rejected
    journal returns every problem found and consumes no number.
    """
    service = JournalService(db)
    try:
        return service.create_journal(request)
    except LedgerError as e:
        raise http_error(e)


@router.get("", response_model=JournalListResponse)
def list_journals(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    account_code: str | None = None,
    partner_code: str | None = None,
    db: Session = Depends(get_db),
):
    """List journal headers, newest first."""
    service = JournalService(db)
    try:
        journals, total_count = service.list_journals(
            page=page,
            limit=limit,
            search=search,
            date_from=date_from,
            date_to=date_to,
            account_code=account_code,
            partner_code=partner_code,
        )
    except LedgerError as e:
        raise http_error(e)
    return JournalListResponse(
        items=[JournalSummaryResponse.model_validate(j) for j in journals],
        total_count=total_count,
        page=page,
        limit=limit,
    )


@router.get("/integrity", response_model=LedgerIntegrityResponse)
def check_ledger_integrity(db: Session = Depends(get_db)):
    """Verify that total debits equal total credits across the ledger."""
    service = JournalService(db)
    try:
        return service.check_integrity()
    except LedgerError as e:
        raise http_error(e)


@router.get("/{journal_number}", response_model=JournalResponse)
def get_journal(
    journal_number: str,
    db: Session = Depends(get_db),
):
    service = JournalService(db)
    try:
        return service.get_journal(journal_number)
    except LedgerError as e:
        raise http_error(e)


@router.put("/{journal_number}", response_model=JournalResponse)
def update_journal(
    journal_number: str,
    request: JournalUpdate,
    db: Session = Depends(get_db),
):
    """
    Replace a journal's date, description and lines.

    The journal keeps its number. The new lines are re-validated
    exactly as on creation.
    """
    service = JournalService(db)
    try:
        return service.update_journal(journal_number, request)
    except LedgerError as e:
        raise http_error(e)


@router.delete("/{journal_number}", status_code=204)
def delete_journal(
    journal_number: str,
    db: Session = Depends(get_db),
):
    service = JournalService(db)
    try:
        service.delete_journal(journal_number)
    except LedgerError as e:
        raise http_error(e)


# --- Journal numbers ---

@numbers_router.get("/preview", response_model=JournalNumberPreview)
def preview_journal_number(
    journal_date: date,
    db: Session = Depends(get_db),
):
    """
    Show the number the next journal for a date would receive.

    Nothing is reserved; a concurrent posting may take it first.
    """
    allocator = SequenceAllocator(db)
    return JournalNumberPreview(
        journal_date=journal_date,
        next_number=allocator.preview_next_number(journal_date),
        last_number=allocator.last_number_for_date(journal_date),
    )


@numbers_router.get("/integrity", response_model=list[SequenceIntegrityReport])
def check_sequence_integrity(
    journal_date: date | None = None,
    db: Session = Depends(get_db),
):
    """Compare per-date counters with the journals actually stored."""
    allocator = SequenceAllocator(db)
    try:
        return allocator.check_integrity(journal_date)
    except LedgerError as e:
        raise http_error(e)


@numbers_router.get("/{journal_number}/exists")
def journal_number_exists(
    journal_number: str,
    db: Session = Depends(get_db),
):
    allocator = SequenceAllocator(db)
    return {
        "journal_number": journal_number,
        "exists": allocator.number_exists(journal_number),
    }

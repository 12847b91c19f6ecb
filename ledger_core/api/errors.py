"""
Mapping from ledger errors to HTTP responses.

Services raise typed LedgerError subclasses; the API layer turns them
into HTTPException with the error's structured to_dict() as detail.
"""

from fastapi import HTTPException

from ledger_core.exceptions import (
    LedgerError,
    JournalValidationError,
    JournalNotFoundError,
    AccountNotFoundError,
    DuplicateAccountError,
    HierarchyCycleError,
    SequenceConflictError,
    SequenceExhaustedError,
    SequenceUnavailableError,
    InvalidRangeError,
    PersistenceError,
    AggregationError,
)

# Checked in order; the first matching class wins.
STATUS_CODES: list[tuple[type[LedgerError], int]] = [
    (JournalValidationError, 422),
    (JournalNotFoundError, 404),
    (AccountNotFoundError, 404),
    (DuplicateAccountError, 409),
    (HierarchyCycleError, 409),
    (SequenceConflictError, 409),
    (SequenceExhaustedError, 409),
    (InvalidRangeError, 400),
    (SequenceUnavailableError, 503),
    (PersistenceError, 503),
    (AggregationError, 503),
]


def status_code_for(error: LedgerError) -> int:
    for error_class, status_code in STATUS_CODES:
        if isinstance(error, error_class):
            return status_code
    return 400


def http_error(error: LedgerError) -> HTTPException:
    return HTTPException(
        status_code=status_code_for(error),
        detail=error.to_dict(),
    )

"""
Typed errors raised by the ledger services.

Every error carries a machine-readable ``code`` class attribute and
structured fields, and can render itself with ``to_dict()`` so the
API layer never has to parse message strings or leak raw database
error text.

    LedgerError
    +-- JournalValidationError
    |   +-- ValidationError
    |   +-- ReferenceNotFoundError
    |   +-- UnbalancedEntryError
    +-- SequenceError
    |   +-- SequenceConflictError
    |   +-- SequenceExhaustedError
    |   +-- SequenceUnavailableError
    +-- JournalNotFoundError
    +-- InvalidRangeError
    +-- PersistenceError
    +-- AggregationError
    +-- ChartOfAccountsError
        +-- DuplicateAccountError
        +-- AccountNotFoundError
        +-- HierarchyCycleError
"""

import enum
from dataclasses import dataclass, asdict
from datetime import date
from decimal import Decimal


class IssueKind(str, enum.Enum):
    """Category of a single validation finding."""
    INVALID = "INVALID"
    MISSING_REFERENCE = "MISSING_REFERENCE"
    UNBALANCED = "UNBALANCED"


@dataclass(frozen=True)
class ValidationIssue:
    """One problem found while validating a journal."""
    kind: IssueKind
    field: str
    message: str
    line_number: int | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


class LedgerError(Exception):
    """Base class for all ledger errors."""

    code: str = "LEDGER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


# --- Journal validation ---

class JournalValidationError(LedgerError):
    """
    A journal was rejected before anything was written.

    ``issues`` holds every finding from the validation pass, not
    only the ones matching this exception's category.
    """

    code: str = "JOURNAL_INVALID"

    def __init__(self, message: str, issues: list[ValidationIssue]):
        self.issues = list(issues)
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["issues"] = [issue.to_dict() for issue in self.issues]
        return data


class ValidationError(JournalValidationError):
    """Malformed or missing input."""

    code: str = "VALIDATION_ERROR"


class ReferenceNotFoundError(JournalValidationError):
    """A line refers to an account, partner, tax or analysis code that does not exist."""

    code: str = "REFERENCE_NOT_FOUND"


class UnbalancedEntryError(JournalValidationError):
    """Debits do not equal credits, or a line's base + tax != total."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(
        self,
        message: str,
        issues: list[ValidationIssue],
        debit_total: Decimal,
        credit_total: Decimal,
    ):
        self.debit_total = debit_total
        self.credit_total = credit_total
        self.delta = debit_total - credit_total
        super().__init__(message, issues)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["debit_total"] = str(self.debit_total)
        data["credit_total"] = str(self.credit_total)
        data["delta"] = str(self.delta)
        return data


# --- Sequence allocation ---

class SequenceError(LedgerError):
    """The journal number allocator could not issue a number."""

    code: str = "SEQUENCE_ERROR"

    def __init__(self, message: str, journal_date: date):
        self.journal_date = journal_date
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["journal_date"] = self.journal_date.isoformat()
        return data


class SequenceConflictError(SequenceError):
    """Concurrent callers kept colliding on the counter row."""

    code: str = "SEQUENCE_CONFLICT"

    def __init__(self, journal_date: date, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a journal number for {journal_date} "
            f"after {attempts} attempts",
            journal_date,
        )


class SequenceExhaustedError(SequenceError):
    """The per-date counter ran past the fixed suffix width."""

    code: str = "SEQUENCE_EXHAUSTED"

    def __init__(self, journal_date: date, limit: int):
        self.limit = limit
        super().__init__(
            f"Journal number sequence for {journal_date} exceeded {limit}",
            journal_date,
        )


class SequenceUnavailableError(SequenceError):
    """The counter store failed; no number was issued."""

    code: str = "SEQUENCE_UNAVAILABLE"

    def __init__(self, journal_date: date):
        super().__init__(
            f"Journal number sequence for {journal_date} is unavailable",
            journal_date,
        )


# --- Lookups, storage and reporting ---

class JournalNotFoundError(LedgerError):
    """No journal exists with the given number."""

    code: str = "JOURNAL_NOT_FOUND"

    def __init__(self, journal_number: str):
        self.journal_number = journal_number
        super().__init__(f"Journal {journal_number} not found")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["journal_number"] = self.journal_number
        return data


class InvalidRangeError(LedgerError):
    """A report date range is reversed or longer than a report allows."""

    code: str = "INVALID_RANGE"

    def __init__(self, date_from: date, date_to: date, message: str | None = None):
        self.date_from = date_from
        self.date_to = date_to
        super().__init__(
            message or f"date_from {date_from} is after date_to {date_to}"
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["date_from"] = self.date_from.isoformat()
        data["date_to"] = self.date_to.isoformat()
        return data


class PersistenceError(LedgerError):
    """The database failed while writing. The transaction was rolled back."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Storage failure during {operation}; nothing was saved")


class AggregationError(LedgerError):
    """The database failed while reading report data."""

    code: str = "AGGREGATION_ERROR"

    def __init__(self, report: str):
        self.report = report
        super().__init__(f"Could not compute {report}")


# --- Chart of accounts ---

class ChartOfAccountsError(LedgerError):
    code: str = "CHART_OF_ACCOUNTS_ERROR"


class DuplicateAccountError(ChartOfAccountsError):
    code: str = "DUPLICATE_ACCOUNT"

    def __init__(self, account_code: str, sub_account_code: str | None = None):
        self.account_code = account_code
        self.sub_account_code = sub_account_code
        label = account_code if sub_account_code is None else (
            f"{account_code}/{sub_account_code}"
        )
        super().__init__(f"Account '{label}' already exists")


class AccountNotFoundError(ChartOfAccountsError):
    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account '{account_code}' not found")


class HierarchyCycleError(ChartOfAccountsError):
    """Re-parenting would make an account its own ancestor."""

    code: str = "HIERARCHY_CYCLE"

    def __init__(self, account_code: str, path: list[str]):
        self.account_code = account_code
        self.path = path
        super().__init__(
            f"Account hierarchy cycle at '{account_code}': "
            + " -> ".join(path)
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["path"] = self.path
        return data

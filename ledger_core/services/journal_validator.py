"""
Journal validation.

Runs every check on a proposed journal before anything is written
and collects all findings, so a caller can fix every problem in one
round trip. The exception raised depends on the most basic kind of
problem found (malformed input, then dangling references, then
arithmetic), but it always carries the full list of issues.
"""

from decimal import Decimal

from sqlalchemy.orm import Session

from ledger_core.exceptions import (
    IssueKind,
    ReferenceNotFoundError,
    UnbalancedEntryError,
    ValidationError,
    ValidationIssue,
)
from ledger_core.models.enums import EntrySide
from ledger_core.schemas.journal import JournalCreate, JournalLineCreate
from ledger_core.services.account_hierarchy import AccountHierarchy
from ledger_core.services.reference_lookup import ReferenceLookup


MIN_LINES = 2
MAX_AMOUNT = Decimal("999999999999.99")
# Largest value journal_headers.total_amount (Numeric(15, 2)) holds
MAX_TOTAL = Decimal("9999999999999.99")
CENT = Decimal("0.01")


def line_totals(lines: list[JournalLineCreate]) -> tuple[Decimal, Decimal]:
    """Sum of total_amount per side: (debits, credits)."""
    debits = sum(
        (line.total_amount for line in lines if line.side == EntrySide.DEBIT),
        Decimal("0"),
    )
    credits = sum(
        (line.total_amount for line in lines if line.side == EntrySide.CREDIT),
        Decimal("0"),
    )
    return debits, credits


class JournalValidator:

    def __init__(self, db: Session, max_lines: int = 50):
        self.db = db
        self.max_lines = max_lines
        self.lookup = ReferenceLookup(db)

    def validate(self, request: JournalCreate) -> None:
        """Raise a JournalValidationError subclass if the journal cannot be posted."""
        issues: list[ValidationIssue] = []
        issues.extend(self._check_structure(request))
        issues.extend(self._check_references(request.lines))
        balance_issues, debits, credits = self._check_balance(request.lines)
        issues.extend(balance_issues)

        if not issues:
            return

        kinds = {issue.kind for issue in issues}
        count = len(issues)
        if IssueKind.INVALID in kinds:
            raise ValidationError(f"Journal is invalid ({count} issues)", issues)
        if IssueKind.MISSING_REFERENCE in kinds:
            raise ReferenceNotFoundError(
                f"Journal references unknown codes ({count} issues)", issues
            )
        raise UnbalancedEntryError(
            f"Journal does not balance: debits={debits}, credits={credits}",
            issues,
            debit_total=debits,
            credit_total=credits,
        )

    # --- Checks ---

    def _check_structure(self, request: JournalCreate) -> list[ValidationIssue]:
        issues = []
        line_count = len(request.lines)
        if line_count < MIN_LINES:
            issues.append(ValidationIssue(
                IssueKind.INVALID, "lines",
                "at least two lines required",
            ))
        if line_count > self.max_lines:
            issues.append(ValidationIssue(
                IssueKind.INVALID, "lines",
                f"at most {self.max_lines} lines allowed",
            ))

        for line_number, line in enumerate(request.lines, start=1):
            if not line.account_code.strip():
                issues.append(ValidationIssue(
                    IssueKind.INVALID, "account_code",
                    "account code is required", line_number,
                ))
            for field in ("base_amount", "tax_amount", "total_amount"):
                issues.extend(self._check_amount(line, field, line_number))
        return issues

    def _check_amount(
        self, line: JournalLineCreate, field: str, line_number: int
    ) -> list[ValidationIssue]:
        value: Decimal = getattr(line, field)
        if not value.is_finite():
            return [ValidationIssue(
                IssueKind.INVALID, field, "amount must be a number", line_number,
            )]
        if abs(value) > MAX_AMOUNT:
            # quantize would overflow the decimal context for huge values
            return [ValidationIssue(
                IssueKind.INVALID, field,
                f"amount exceeds {MAX_AMOUNT}", line_number,
            )]
        issues = []
        if field == "total_amount" and value <= 0:
            issues.append(ValidationIssue(
                IssueKind.INVALID, field, "total must be positive", line_number,
            ))
        elif value < 0:
            issues.append(ValidationIssue(
                IssueKind.INVALID, field, "amount must not be negative", line_number,
            ))
        if value != value.quantize(CENT):
            issues.append(ValidationIssue(
                IssueKind.INVALID, field,
                "amount has more than 2 decimal places", line_number,
            ))
        return issues

    def _check_references(
        self, lines: list[JournalLineCreate]
    ) -> list[ValidationIssue]:
        hierarchy = AccountHierarchy.load(self.db)
        partners = self.lookup.partners(l.partner_code for l in lines)
        analysis = self.lookup.analysis_codes(l.analysis_code for l in lines)
        taxes = self.lookup.tax_codes(l.tax_code for l in lines)
        sub_accounts = self.lookup.sub_accounts(
            (l.account_code, l.sub_account_code) for l in lines
            if l.sub_account_code
        )

        issues = []
        for line_number, line in enumerate(lines, start=1):
            if not line.account_code.strip():
                continue
            node = hierarchy.get(line.account_code)
            if node is None:
                issues.append(ValidationIssue(
                    IssueKind.MISSING_REFERENCE, "account_code",
                    f"account '{line.account_code}' not found", line_number,
                ))
            elif not node.is_postable:
                reason = (
                    "is not active" if not node.is_active
                    else "is a summary account and cannot be posted to"
                )
                issues.append(ValidationIssue(
                    IssueKind.INVALID, "account_code",
                    f"account '{line.account_code}' {reason}", line_number,
                ))

            if line.sub_account_code and node is not None:
                issues.extend(self._check_code(
                    sub_accounts.get((line.account_code, line.sub_account_code)),
                    "sub_account_code",
                    f"sub-account '{line.account_code}/{line.sub_account_code}'",
                    line_number,
                ))
            if line.partner_code:
                issues.extend(self._check_code(
                    partners.get(line.partner_code), "partner_code",
                    f"partner '{line.partner_code}'", line_number,
                ))
            if line.analysis_code:
                issues.extend(self._check_code(
                    analysis.get(line.analysis_code), "analysis_code",
                    f"analysis code '{line.analysis_code}'", line_number,
                ))
            if line.tax_code:
                issues.extend(self._check_code(
                    taxes.get(line.tax_code), "tax_code",
                    f"tax code '{line.tax_code}'", line_number,
                ))
        return issues

    @staticmethod
    def _check_code(
        is_active: bool | None, field: str, label: str, line_number: int
    ) -> list[ValidationIssue]:
        if is_active is None:
            return [ValidationIssue(
                IssueKind.MISSING_REFERENCE, field, f"{label} not found", line_number,
            )]
        if not is_active:
            return [ValidationIssue(
                IssueKind.INVALID, field, f"{label} is not active", line_number,
            )]
        return []

    def _check_balance(
        self, lines: list[JournalLineCreate]
    ) -> tuple[list[ValidationIssue], Decimal, Decimal]:
        issues = []
        for line_number, line in enumerate(lines, start=1):
            if line.base_amount + line.tax_amount != line.total_amount:
                issues.append(ValidationIssue(
                    IssueKind.UNBALANCED, "total_amount",
                    f"base {line.base_amount} + tax {line.tax_amount} "
                    f"!= total {line.total_amount}", line_number,
                ))

        debits, credits = line_totals(lines)
        if debits != credits:
            issues.append(ValidationIssue(
                IssueKind.UNBALANCED, "lines",
                f"debits {debits} != credits {credits} "
                f"(difference {debits - credits})",
            ))
        for side, total in ((EntrySide.DEBIT, debits), (EntrySide.CREDIT, credits)):
            if total > MAX_TOTAL:
                issues.append(ValidationIssue(
                    IssueKind.INVALID, "lines",
                    f"{side.value.lower()} total {total} exceeds {MAX_TOTAL}",
                ))
        return issues, debits, credits

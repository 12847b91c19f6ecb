"""Business logic services."""

from ledger_core.services.account_hierarchy import AccountHierarchy, AccountNode
from ledger_core.services.chart_service import ChartOfAccountsService
from ledger_core.services.journal_service import JournalService
from ledger_core.services.journal_summary_service import JournalSummaryService
from ledger_core.services.journal_validator import JournalValidator
from ledger_core.services.sequence_allocator import SequenceAllocator
from ledger_core.services.trial_balance_service import TrialBalanceService

__all__ = [
    "AccountHierarchy",
    "AccountNode",
    "ChartOfAccountsService",
    "JournalService",
    "JournalSummaryService",
    "JournalValidator",
    "SequenceAllocator",
    "TrialBalanceService",
]

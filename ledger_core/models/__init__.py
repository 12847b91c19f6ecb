"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from ledger_core.models.base import Base
from ledger_core.models.enums import AccountType, EntrySide
from ledger_core.models.account import Account, SubAccount
from ledger_core.models.reference import Partner, AnalysisCode, TaxRate
from ledger_core.models.journal import JournalHeader, JournalDetail
from ledger_core.models.journal_sequence import JournalNumberSequence

__all__ = [
    "Base",
    "AccountType",
    "EntrySide",
    "Account",
    "SubAccount",
    "Partner",
    "AnalysisCode",
    "TaxRate",
    "JournalHeader",
    "JournalDetail",
    "JournalNumberSequence",
]

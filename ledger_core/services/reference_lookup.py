"""
Read-only lookups against externally owned master data.

Each method resolves a batch of codes in one query and returns
{code: is_active}. Codes missing from the result do not exist.
Results live only as long as one validation pass.
"""

from typing import Iterable

from sqlalchemy import select, tuple_
from sqlalchemy.orm import Session

from ledger_core.models.account import SubAccount
from ledger_core.models.reference import Partner, AnalysisCode, TaxRate


class ReferenceLookup:

    def __init__(self, db: Session):
        self.db = db

    def _active_flags(self, model, key_column, codes: Iterable[str]) -> dict[str, bool]:
        codes = {c for c in codes if c}
        if not codes:
            return {}
        rows = self.db.execute(
            select(key_column, model.is_active).where(key_column.in_(codes))
        ).all()
        return {code: is_active for code, is_active in rows}

    def partners(self, codes: Iterable[str]) -> dict[str, bool]:
        return self._active_flags(Partner, Partner.partner_code, codes)

    def analysis_codes(self, codes: Iterable[str]) -> dict[str, bool]:
        return self._active_flags(AnalysisCode, AnalysisCode.analysis_code, codes)

    def tax_codes(self, codes: Iterable[str]) -> dict[str, bool]:
        return self._active_flags(TaxRate, TaxRate.tax_code, codes)

    def sub_accounts(
        self, keys: Iterable[tuple[str, str]]
    ) -> dict[tuple[str, str], bool]:
        keys = {k for k in keys if k[0] and k[1]}
        if not keys:
            return {}
        rows = self.db.execute(
            select(
                SubAccount.account_code,
                SubAccount.sub_account_code,
                SubAccount.is_active,
            ).where(
                tuple_(SubAccount.account_code, SubAccount.sub_account_code)
                .in_(list(keys))
            )
        ).all()
        return {
            (account_code, sub_code): is_active
            for account_code, sub_code, is_active in rows
        }

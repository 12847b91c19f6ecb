"""
Chart of accounts service.

Master-data maintenance is owned elsewhere; this service covers the
writes the ledger depends on to stay correct: accounts are unique by
code, parents exist, and the parent relation never forms a cycle.

Like the other master-data writers it only flushes. The caller
decides when to commit.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_core.exceptions import (
    AccountNotFoundError,
    DuplicateAccountError,
    HierarchyCycleError,
)
from ledger_core.models.account import Account, SubAccount
from ledger_core.schemas.account import (
    AccountCreate,
    AccountMove,
    AccountTreeNode,
    SubAccountCreate,
)
from ledger_core.services.account_hierarchy import AccountHierarchy

logger = logging.getLogger(__name__)


class ChartOfAccountsService:

    def __init__(self, db: Session):
        self.db = db

    def create_account(self, request: AccountCreate) -> Account:
        """
        Add an account to the chart.

        Raises DuplicateAccountError if the code is taken and
        AccountNotFoundError if the parent does not exist.
        """
        if self.db.get(Account, request.account_code) is not None:
            raise DuplicateAccountError(request.account_code)

        if request.parent_account_code is not None:
            if request.parent_account_code == request.account_code:
                raise HierarchyCycleError(
                    request.account_code,
                    [request.account_code, request.account_code],
                )
            if self.db.get(Account, request.parent_account_code) is None:
                raise AccountNotFoundError(request.parent_account_code)

        account = Account(
            account_code=request.account_code,
            account_name=request.account_name,
            account_type=request.account_type,
            parent_account_code=request.parent_account_code,
            is_detail=request.is_detail,
            sort_order=request.sort_order,
        )
        self.db.add(account)
        self.db.flush()
        logger.info(
            "account_created",
            extra={"account_code": account.account_code},
        )
        return account

    def move_account(self, account_code: str, request: AccountMove) -> Account:
        """Re-parent an account, refusing any move that would create a cycle."""
        account = self.db.get(Account, account_code)
        if account is None:
            raise AccountNotFoundError(account_code)

        new_parent = request.parent_account_code
        if new_parent is not None and self.db.get(Account, new_parent) is None:
            raise AccountNotFoundError(new_parent)

        hierarchy = AccountHierarchy.load(self.db)
        cycle = hierarchy.cycle_if_moved(account_code, new_parent)
        if cycle:
            raise HierarchyCycleError(account_code, cycle)

        account.parent_account_code = new_parent
        self.db.flush()
        return account

    def create_sub_account(
        self, account_code: str, request: SubAccountCreate
    ) -> SubAccount:
        account = self.db.get(Account, account_code)
        if account is None:
            raise AccountNotFoundError(account_code)

        existing = self.db.get(
            SubAccount, (account_code, request.sub_account_code)
        )
        if existing is not None:
            raise DuplicateAccountError(account_code, request.sub_account_code)

        sub_account = SubAccount(
            account_code=account_code,
            sub_account_code=request.sub_account_code,
            sub_account_name=request.sub_account_name,
            sort_order=request.sort_order,
        )
        self.db.add(sub_account)
        self.db.flush()
        return sub_account

    def get_account(self, account_code: str) -> Account:
        account = self.db.get(Account, account_code)
        if account is None:
            raise AccountNotFoundError(account_code)
        return account

    def list_sub_accounts(self, account_code: str) -> list[SubAccount]:
        self.get_account(account_code)
        sub_accounts = self.db.execute(
            select(SubAccount)
            .where(SubAccount.account_code == account_code)
            .order_by(SubAccount.sort_order, SubAccount.sub_account_code)
        ).scalars().all()
        return list(sub_accounts)

    def list_tree(self) -> list[AccountTreeNode]:
        """Every account in hierarchy order with its depth."""
        hierarchy = AccountHierarchy.load(self.db)
        hierarchy.validate()
        return [
            AccountTreeNode(
                account_code=node.account_code,
                account_name=node.account_name,
                account_type=node.account_type,
                parent_account_code=node.parent_code,
                depth=depth,
                is_detail=node.is_detail,
                is_active=node.is_active,
            )
            for node, depth in hierarchy.walk()
        ]

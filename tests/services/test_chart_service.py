"""
Tests for the ChartOfAccountsService.

The service only flushes, so each test commits the way the
API layer does.
"""

import pytest

from ledger_core.exceptions import (
    AccountNotFoundError,
    DuplicateAccountError,
    HierarchyCycleError,
)
from ledger_core.models.enums import AccountType
from ledger_core.schemas.account import AccountCreate, AccountMove, SubAccountCreate
from ledger_core.services.chart_service import ChartOfAccountsService


def make_account(service, code, parent=None, is_detail=True,
                 account_type=AccountType.ASSET):
    return service.create_account(AccountCreate(
        account_code=code,
        account_name=f"Account {code}",
        account_type=account_type,
        parent_account_code=parent,
        is_detail=is_detail,
    ))


class TestCreateAccount:

    def test_create_top_level_account(self, db_session):
        service = ChartOfAccountsService(db_session)
        account = make_account(service, "1000", is_detail=False)
        db_session.commit()

        assert account.account_code == "1000"
        assert account.parent_account_code is None
        assert account.is_detail is False
        assert account.is_active is True

    def test_create_child_account(self, db_session):
        service = ChartOfAccountsService(db_session)
        make_account(service, "1000", is_detail=False)
        child = make_account(service, "1110", parent="1000")
        db_session.commit()

        assert child.parent.account_code == "1000"

    def test_duplicate_code_rejected(self, db_session):
        service = ChartOfAccountsService(db_session)
        make_account(service, "1000")
        db_session.commit()

        with pytest.raises(DuplicateAccountError, match="already exists"):
            make_account(service, "1000")

    def test_missing_parent_rejected(self, db_session):
        service = ChartOfAccountsService(db_session)

        with pytest.raises(AccountNotFoundError) as exc_info:
            make_account(service, "1110", parent="1000")
        assert exc_info.value.account_code == "1000"

    def test_own_parent_rejected(self, db_session):
        service = ChartOfAccountsService(db_session)

        with pytest.raises(HierarchyCycleError):
            make_account(service, "1110", parent="1110")


class TestMoveAccount:

    @pytest.fixture
    def tree(self, db_session):
        service = ChartOfAccountsService(db_session)
        make_account(service, "1000", is_detail=False)
        make_account(service, "1100", parent="1000", is_detail=False)
        make_account(service, "1110", parent="1100")
        make_account(service, "1200", parent="1000")
        db_session.commit()
        return service

    def test_move_to_new_parent(self, db_session, tree):
        account = tree.move_account("1200", AccountMove(parent_account_code="1100"))
        db_session.commit()

        assert account.parent_account_code == "1100"

    def test_move_to_top_level(self, db_session, tree):
        account = tree.move_account("1100", AccountMove(parent_account_code=None))
        db_session.commit()

        assert account.parent_account_code is None

    def test_move_under_descendant_rejected(self, db_session, tree):
        with pytest.raises(HierarchyCycleError) as exc_info:
            tree.move_account("1000", AccountMove(parent_account_code="1110"))

        assert exc_info.value.path[0] == "1000"
        assert exc_info.value.path[-1] == "1000"
        db_session.rollback()
        assert tree.get_account("1000").parent_account_code is None

    def test_move_missing_account(self, db_session, tree):
        with pytest.raises(AccountNotFoundError):
            tree.move_account("9999", AccountMove(parent_account_code="1000"))

    def test_move_under_missing_parent(self, db_session, tree):
        with pytest.raises(AccountNotFoundError):
            tree.move_account("1110", AccountMove(parent_account_code="9999"))


class TestSubAccounts:

    def test_create_and_list_sub_accounts(self, db_session):
        service = ChartOfAccountsService(db_session)
        make_account(service, "1120")
        service.create_sub_account("1120", SubAccountCreate(
            sub_account_code="002", sub_account_name="Savings", sort_order=2,
        ))
        service.create_sub_account("1120", SubAccountCreate(
            sub_account_code="001", sub_account_name="Main", sort_order=1,
        ))
        db_session.commit()

        codes = [s.sub_account_code for s in service.list_sub_accounts("1120")]
        assert codes == ["001", "002"]

    def test_duplicate_sub_account_rejected(self, db_session):
        service = ChartOfAccountsService(db_session)
        make_account(service, "1120")
        service.create_sub_account("1120", SubAccountCreate(
            sub_account_code="001", sub_account_name="Main",
        ))
        db_session.commit()

        with pytest.raises(DuplicateAccountError) as exc_info:
            service.create_sub_account("1120", SubAccountCreate(
                sub_account_code="001", sub_account_name="Main again",
            ))
        assert exc_info.value.sub_account_code == "001"

    def test_sub_account_needs_account(self, db_session):
        service = ChartOfAccountsService(db_session)

        with pytest.raises(AccountNotFoundError):
            service.create_sub_account("1120", SubAccountCreate(
                sub_account_code="001", sub_account_name="Main",
            ))


class TestListTree:

    def test_tree_in_hierarchy_order(self, db_session, chart):
        tree = ChartOfAccountsService(db_session).list_tree()

        assert [(n.account_code, n.depth) for n in tree[:4]] == [
            ("1000", 0), ("1110", 1), ("1120", 1), ("1990", 1),
        ]
        assert len(tree) == 10

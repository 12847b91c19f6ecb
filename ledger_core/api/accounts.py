"""
Chart of accounts API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ledger_core.api.errors import http_error
from ledger_core.exceptions import LedgerError
from ledger_core.models.base import get_db
from ledger_core.services.chart_service import ChartOfAccountsService
from ledger_core.schemas.account import (
    AccountCreate,
    AccountMove,
    AccountResponse,
    AccountTreeNode,
    SubAccountCreate,
    SubAccountResponse,
)

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.get("", response_model=list[AccountTreeNode])
def list_accounts(db: Session = Depends(get_db)):
    """Every account in hierarchy order, with its depth in the tree."""
    service = ChartOfAccountsService(db)
    try:
        return service.list_tree()
    except LedgerError as e:
        raise http_error(e)


@router.post("", response_model=AccountResponse, status_code=201)
def create_account(
    request: AccountCreate,
    db: Session = Depends(get_db),
):
    service = ChartOfAccountsService(db)
    try:
        account = service.create_account(request)
        db.commit()
        return account
    except LedgerError as e:
        db.rollback()
        raise http_error(e)


@router.get("/{account_code}", response_model=AccountResponse)
def get_account(
    account_code: str,
    db: Session = Depends(get_db),
):
    service = ChartOfAccountsService(db)
    try:
        return service.get_account(account_code)
    except LedgerError as e:
        raise http_error(e)


@router.put("/{account_code}/parent", response_model=AccountResponse)
def move_account(
    account_code: str,
    request: AccountMove,
    db: Session = Depends(get_db),
):
    """
    Move an account under a new parent, or to the top level.

    Rejected with 409 if the move would make the account its own
    ancestor.
    """
    service = ChartOfAccountsService(db)
    try:
        account = service.move_account(account_code, request)
        db.commit()
        return account
    except LedgerError as e:
        db.rollback()
        raise http_error(e)


@router.get(
    "/{account_code}/sub-accounts",
    response_model=list[SubAccountResponse],
)
def list_sub_accounts(
    account_code: str,
    db: Session = Depends(get_db),
):
    service = ChartOfAccountsService(db)
    try:
        return service.list_sub_accounts(account_code)
    except LedgerError as e:
        raise http_error(e)


@router.post(
    "/{account_code}/sub-accounts",
    response_model=SubAccountResponse,
    status_code=201,
)
def create_sub_account(
    account_code: str,
    request: SubAccountCreate,
    db: Session = Depends(get_db),
):
    service = ChartOfAccountsService(db)
    try:
        sub_account = service.create_sub_account(account_code, request)
        db.commit()
        return sub_account
    except LedgerError as e:
        db.rollback()
        raise http_error(e)

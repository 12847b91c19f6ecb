"""
Pydantic schemas for the chart of accounts.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from ledger_core.models.enums import AccountType


# --- Request Schemas ---

class AccountCreate(BaseModel):
    """Request to add an account to the chart."""
    account_code: str = Field(min_length=1, max_length=10)
    account_name: str = Field(min_length=1, max_length=100)
    account_type: AccountType
    parent_account_code: str | None = Field(default=None, max_length=10)
    is_detail: bool = True
    sort_order: int | None = None


class AccountMove(BaseModel):
    """Request to change an account's parent."""
    parent_account_code: str | None = Field(default=None, max_length=10)


class SubAccountCreate(BaseModel):
    sub_account_code: str = Field(min_length=1, max_length=15)
    sub_account_name: str = Field(min_length=1, max_length=100)
    sort_order: int | None = None


# --- Response Schemas ---

class AccountResponse(BaseModel):
    account_code: str
    account_name: str
    account_type: AccountType
    parent_account_code: str | None
    is_detail: bool
    is_active: bool
    sort_order: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class SubAccountResponse(BaseModel):
    account_code: str
    sub_account_code: str
    sub_account_name: str
    is_active: bool

    model_config = {"from_attributes": True}


class AccountTreeNode(BaseModel):
    """One node of the chart in hierarchy order."""
    account_code: str
    account_name: str
    account_type: AccountType
    parent_account_code: str | None
    depth: int
    is_detail: bool
    is_active: bool

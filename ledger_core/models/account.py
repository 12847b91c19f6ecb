"""
Chart of accounts models.

Accounts form a tree through parent_account_code. Only detail
accounts (is_detail=True) can be posted to; summary accounts exist
to group their descendants in reports. Sub-accounts add an optional
second dimension under a single account.
"""

from datetime import datetime

from sqlalchemy import (
    String, Boolean, DateTime, Integer, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_core.models.base import Base
from ledger_core.models.enums import AccountType


class Account(Base):
    """
    A single account in the chart of accounts.

    Accounts are never deleted once referenced by journal lines,
    only deactivated via is_active=False.
    """

    __tablename__ = "accounts"

    account_code: Mapped[str] = mapped_column(String(10), primary_key=True)
    account_name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(AccountType, name="account_type_enum"),
        nullable=False,
    )
    parent_account_code: Mapped[str | None] = mapped_column(
        ForeignKey("accounts.account_code"), nullable=True, index=True
    )
    is_detail: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    parent: Mapped["Account | None"] = relationship(
        remote_side=[account_code], back_populates="children"
    )
    children: Mapped[list["Account"]] = relationship(back_populates="parent")
    sub_accounts: Mapped[list["SubAccount"]] = relationship(
        back_populates="account",
        order_by="SubAccount.sort_order, SubAccount.sub_account_code",
    )

    def __repr__(self) -> str:
        return f"<Account {self.account_code} ({self.account_type.value})>"


class SubAccount(Base):
    __tablename__ = "sub_accounts"

    account_code: Mapped[str] = mapped_column(
        ForeignKey("accounts.account_code"), primary_key=True
    )
    sub_account_code: Mapped[str] = mapped_column(String(15), primary_key=True)
    sub_account_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    account: Mapped["Account"] = relationship(back_populates="sub_accounts")

    def __repr__(self) -> str:
        return f"<SubAccount {self.account_code}/{self.sub_account_code}>"

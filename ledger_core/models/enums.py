"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored.
"""

import enum


class AccountType(str, enum.Enum):
    """
    The five fundamental accounting categories.

    Declaration order is the canonical report order.
    """
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    @property
    def is_debit_normal(self) -> bool:
        """Assets and expenses increase on the debit side."""
        return self in (AccountType.ASSET, AccountType.EXPENSE)


class EntrySide(str, enum.Enum):
    """Side of a journal line."""
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


ACCOUNT_TYPE_ORDER: dict[AccountType, int] = {
    account_type: index for index, account_type in enumerate(AccountType)
}

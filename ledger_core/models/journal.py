"""
Journal header and line models.

A journal is one header plus at least two lines. Within a journal
the sum of DEBIT line totals equals the sum of CREDIT line totals,
and every line satisfies base_amount + tax_amount == total_amount.
These invariants are enforced by the JournalService before anything
is written; the models are just the data structure.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Integer, Numeric, Text, ForeignKey,
    ForeignKeyConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_core.models.base import Base
from ledger_core.models.enums import EntrySide


# 15 digits, 2 decimal places
MONEY = Numeric(15, 2)
CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """
    Normalize a value read from the database to a 2-place Decimal.

    SQLite returns SUM() over NUMERIC columns as float.
    """
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT)


class JournalHeader(Base):
    __tablename__ = "journal_headers"

    journal_number: Mapped[str] = mapped_column(String(15), primary_key=True)
    journal_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Debit-side total, kept for list views
    total_amount: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, default=Decimal("0")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    details: Mapped[list["JournalDetail"]] = relationship(
        back_populates="header",
        cascade="all, delete-orphan",
        order_by="JournalDetail.line_number",
    )

    def __repr__(self) -> str:
        return f"<JournalHeader {self.journal_number} {self.journal_date}>"


class JournalDetail(Base):
    """
    One line of a journal.

    Lines are never patched individually. An update deletes every
    line of the journal and inserts the new set.
    """

    __tablename__ = "journal_details"
    __table_args__ = (
        ForeignKeyConstraint(
            ["account_code", "sub_account_code"],
            ["sub_accounts.account_code", "sub_accounts.sub_account_code"],
        ),
    )

    journal_number: Mapped[str] = mapped_column(
        ForeignKey("journal_headers.journal_number", ondelete="CASCADE"),
        primary_key=True,
    )
    line_number: Mapped[int] = mapped_column(Integer, primary_key=True)
    side: Mapped[EntrySide] = mapped_column(
        SAEnum(EntrySide, name="entry_side_enum"),
        nullable=False,
    )
    account_code: Mapped[str] = mapped_column(
        ForeignKey("accounts.account_code"), nullable=False, index=True
    )
    sub_account_code: Mapped[str | None] = mapped_column(
        String(15), nullable=True
    )
    partner_code: Mapped[str | None] = mapped_column(
        ForeignKey("partners.partner_code"), nullable=True, index=True
    )
    analysis_code: Mapped[str | None] = mapped_column(
        ForeignKey("analysis_codes.analysis_code"), nullable=True
    )
    tax_code: Mapped[str | None] = mapped_column(
        ForeignKey("tax_rates.tax_code"), nullable=True
    )
    base_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, default=Decimal("0")
    )
    total_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    line_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    header: Mapped["JournalHeader"] = relationship(back_populates="details")

    def __repr__(self) -> str:
        return (
            f"<JournalDetail {self.journal_number}#{self.line_number} "
            f"{self.side.value} {self.account_code} {self.total_amount}>"
        )

"""
Journal number counter model.

One row per posting date holds the last sequence number issued
for that date. The row is incremented in place, inside the same
transaction that inserts the journal, so a rolled-back posting
never consumes a number.
"""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from ledger_core.models.base import Base


class JournalNumberSequence(Base):
    __tablename__ = "journal_number_sequences"

    journal_date: Mapped[date] = mapped_column(Date, primary_key=True)
    last_sequence_number: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return (
            f"<JournalNumberSequence {self.journal_date} "
            f"last={self.last_sequence_number}>"
        )

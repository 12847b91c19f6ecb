"""
Auxiliary reference data attached to journal lines.

Partners, analysis codes and tax rates are maintained outside the
ledger. The ledger only reads them to check that a code exists and
is active when a journal is posted.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from ledger_core.models.base import Base


class Partner(Base):
    __tablename__ = "partners"

    partner_code: Mapped[str] = mapped_column(String(15), primary_key=True)
    partner_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Partner {self.partner_code}>"


class AnalysisCode(Base):
    __tablename__ = "analysis_codes"

    analysis_code: Mapped[str] = mapped_column(String(15), primary_key=True)
    analysis_name: Mapped[str] = mapped_column(String(100), nullable=False)
    analysis_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="GENERAL"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<AnalysisCode {self.analysis_code}>"


class TaxRate(Base):
    __tablename__ = "tax_rates"

    tax_code: Mapped[str] = mapped_column(String(10), primary_key=True)
    tax_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Stored as a fraction: 0.1000 is 10%
    rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<TaxRate {self.tax_code} {self.rate}>"

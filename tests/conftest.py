"""
Shared test fixtures.

Sets up an isolated SQLite database so tests never touch the real
database. Tables are created before and dropped after every test,
and the chart fixture seeds a small chart of accounts with the
reference data journals point at.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from ledger_core.main import app
from ledger_core.models.account import Account, SubAccount
from ledger_core.models.base import Base, build_engine, get_db
from ledger_core.models.enums import AccountType
from ledger_core.models.reference import Partner, AnalysisCode, TaxRate


# Use SQLite for tests so no external database is needed.
# build_engine applies the same BEGIN, SAVEPOINT and write-lock
# handling the application uses for SQLite.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = build_engine(TEST_DATABASE_URL, statement_timeout_ms=30000)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    """For tests that need one session per thread."""
    return TestSessionLocal


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    We override the get_db dependency so the FastAPI app
    uses our test session instead of the real database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# --- Seed data ---

CHART = [
    # code, name, type, parent, is_detail, is_active
    ("1000", "Assets", AccountType.ASSET, None, False, True),
    ("1110", "Cash", AccountType.ASSET, "1000", True, True),
    ("1120", "Bank Deposits", AccountType.ASSET, "1000", True, True),
    ("1990", "Old Petty Cash", AccountType.ASSET, "1000", True, False),
    ("2000", "Liabilities", AccountType.LIABILITY, None, False, True),
    ("2301", "Tax Payable", AccountType.LIABILITY, "2000", True, True),
    ("3100", "Capital", AccountType.EQUITY, None, True, True),
    ("4000", "Revenue", AccountType.REVENUE, None, False, True),
    ("4110", "Sales", AccountType.REVENUE, "4000", True, True),
    ("5110", "Rent", AccountType.EXPENSE, None, True, True),
]


@pytest.fixture
def chart(db_session):
    """
    Seed the chart of accounts and reference data, then commit.

    1120 has two sub-accounts (001 active, 009 inactive). Partner
    P999, analysis code AX and tax code T99 are inactive.
    """
    for code, name, account_type, parent, is_detail, is_active in CHART:
        db_session.add(Account(
            account_code=code,
            account_name=name,
            account_type=account_type,
            parent_account_code=parent,
            is_detail=is_detail,
            is_active=is_active,
        ))
    db_session.flush()

    db_session.add_all([
        SubAccount(account_code="1120", sub_account_code="001",
                   sub_account_name="Main Bank", sort_order=1),
        SubAccount(account_code="1120", sub_account_code="002",
                   sub_account_name="Savings Bank", sort_order=2),
        SubAccount(account_code="1120", sub_account_code="009",
                   sub_account_name="Closed Bank", sort_order=9,
                   is_active=False),
        Partner(partner_code="P001", partner_name="Acme Ltd"),
        Partner(partner_code="P999", partner_name="Gone Ltd", is_active=False),
        AnalysisCode(analysis_code="A01", analysis_name="Head Office"),
        AnalysisCode(analysis_code="AX", analysis_name="Retired", is_active=False),
        TaxRate(tax_code="T10", tax_name="Standard 10%", rate=Decimal("0.1000")),
        TaxRate(tax_code="T99", tax_name="Old Rate", rate=Decimal("0.0500"),
                is_active=False),
    ])
    db_session.commit()

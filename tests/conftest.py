"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from finhome_engine.api.main import create_app
from finhome_engine.infrastructure.database.models import Base
from finhome_engine.infrastructure.database.session import get_db
from finhome_engine.domain.models import (
    EconomicAssumptions,
    Frequency,
    InvestmentParameters,
    LenderOffer,
    LoanParameters,
    PersonalFinances,
    RecurringDefinition,
    ScenarioDefinition,
    ScenarioType,
    TransactionTemplate,
    TransactionType,
)


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# pysqlite defers BEGIN until the first write; emit it ourselves so
# savepoints nest inside the session transaction
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def _make_definition(
    definition_id: str = "rec-1",
    frequency: Frequency = Frequency.monthly,
    interval: int = 1,
    start: date = date(2024, 1, 15),
    next_due: date = None,
    **kwargs,
) -> RecurringDefinition:
    """Monthly rent-style expense unless overridden"""
    template = kwargs.pop(
        "template",
        TransactionTemplate(
            transaction_type=TransactionType.expense,
            amount=5_000_000,
            wallet_id="wallet-main",
            name="Rent",
            category_id="cat-housing",
        ),
    )
    return RecurringDefinition(
        id=definition_id,
        owner_id=kwargs.pop("owner_id", "user-1"),
        template=template,
        frequency=frequency,
        interval=interval,
        start_date=start,
        next_due_date=next_due or start,
        **kwargs,
    )


@pytest.fixture
def home_loan() -> LoanParameters:
    """2.4bn over 20 years at 8.5%"""
    return LoanParameters(principal=2_400_000_000, annual_rate_percent=8.5, term_months=240)


@pytest.fixture
def household() -> PersonalFinances:
    return PersonalFinances(monthly_income=60_000_000, monthly_expenses=20_000_000)


@pytest.fixture
def rental_property() -> InvestmentParameters:
    return InvestmentParameters(
        expected_rental_income=15_000_000,
        property_expenses=2_000_000,
        appreciation_rate_percent=5.0,
        initial_property_value=3_000_000_000,
    )


@pytest.fixture
def baseline() -> ScenarioDefinition:
    return ScenarioDefinition(
        id="baseline",
        name="Baseline",
        type=ScenarioType.baseline,
        assumptions=EconomicAssumptions(
            economic_growth_percent=6.0,
            inflation_rate_percent=3.5,
            personal_career_growth_percent=5.0,
        ),
    )


@pytest.fixture
def three_offers() -> list[LenderOffer]:
    """Offers at 7%, 9% and 13% accepting 2bn over 240 months"""
    return [
        LenderOffer(bank_id="bank-poor", bank_name="Poor Bank", interest_rate_percent=13.0, processing_fee=6_000_000),
        LenderOffer(
            bank_id="bank-good",
            bank_name="Good Bank",
            interest_rate_percent=9.0,
            processing_fee=2_000_000,
            max_ltv_ratio_percent=80.0,
        ),
        LenderOffer(
            bank_id="bank-excellent",
            bank_name="Excellent Bank",
            interest_rate_percent=7.0,
            processing_fee=500_000,
            max_ltv_ratio_percent=90.0,
            min_amount=500_000_000,
            max_amount=5_000_000_000,
            min_term_months=60,
            max_term_months=300,
        ),
    ]


@pytest.fixture
def make_definition():
    """Factory for recurring definitions"""
    return _make_definition

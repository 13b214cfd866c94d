"""Integration tests for SQLAlchemy repositories"""

import pytest
from dataclasses import replace
from datetime import date
from sqlalchemy.orm import Session
from finhome_engine.domain.exceptions import InvalidParameter, PerItemError
from finhome_engine.domain.models import AppendOutcome, LoanPurpose
from finhome_engine.domain.recurrence import build_ledger_entry
from finhome_engine.infrastructure.database.models import (
    BankInterestRate,
    FinancialPlan,
    LedgerTransaction,
    RecurringTransaction,
)
from finhome_engine.infrastructure.database.repositories import (
    LedgerRepository,
    LenderOfferRepository,
    PlanRepository,
    RecurringDefinitionRepository,
)


def test_definition_round_trip_and_due_listing(db: Session, make_definition):
    repo = RecurringDefinitionRepository(db)
    repo.add(make_definition("due-now", next_due=date(2024, 2, 15), start=date(2024, 1, 15)))
    repo.add(make_definition("due-soon", start=date(2024, 2, 18)))
    repo.add(make_definition("inactive", start=date(2024, 1, 1), is_active=False))
    db.commit()

    due = repo.list_due(date(2024, 2, 15))
    upcoming = repo.list_upcoming(date(2024, 2, 15), days=7)

    assert [d.id for d in due] == ["due-now"]
    assert due[0].template.category_id == "cat-housing"
    assert due[0].next_due_date == date(2024, 2, 15)
    assert [d.id for d in upcoming] == ["due-soon"]


def test_save_persists_schedule_state(db: Session, make_definition):
    repo = RecurringDefinitionRepository(db)
    definition = make_definition()
    repo.add(definition)
    db.commit()

    repo.save(replace(definition, occurrences_created=3, next_due_date=date(2024, 4, 15), is_active=False))
    db.commit()

    stored = repo.get(definition.id)
    assert stored.occurrences_created == 3
    assert stored.next_due_date == date(2024, 4, 15)
    assert stored.is_active is False


def test_save_unknown_definition_raises(db: Session, make_definition):
    with pytest.raises(LookupError):
        RecurringDefinitionRepository(db).save(make_definition("ghost"))


def test_malformed_row_is_reported_per_item(db: Session, make_definition):
    repo = RecurringDefinitionRepository(db)
    repo.add(make_definition("good"))
    db.add(
        RecurringTransaction(
            id="bad",
            user_id="user-1",
            wallet_id="w",
            transaction_type="expense",
            amount=100,
            frequency="hourly",
            frequency_interval=1,
            start_date=date(2024, 1, 1),
            next_due_date=date(2024, 1, 1),
        )
    )
    db.commit()

    errors = []
    due = repo.list_due(date(2024, 1, 31), on_error=errors.append)

    assert [d.id for d in due] == ["good"]
    assert [e.definition_id for e in errors] == ["bad"]
    with pytest.raises(PerItemError):
        repo.list_due(date(2024, 1, 31))


def test_ledger_append_is_idempotent(db: Session, make_definition):
    definition = make_definition()
    RecurringDefinitionRepository(db).add(definition)
    db.commit()
    ledger = LedgerRepository(db)
    entry = build_ledger_entry(definition, as_of=date(2024, 1, 15))

    assert ledger.append(entry) == AppendOutcome.ok
    db.commit()
    assert ledger.append(entry) == AppendOutcome.duplicate

    rows = ledger.list_for_definition(definition.id)
    assert len(rows) == 1
    assert rows[0].transaction_date == date(2024, 1, 15)
    assert rows[0].expense_category_id == "cat-housing"
    assert rows[0].occurrence_number == 1


def test_unique_constraint_catches_missed_duplicate(db: Session, make_definition, monkeypatch):
    definition = make_definition()
    RecurringDefinitionRepository(db).add(definition)
    db.commit()
    ledger = LedgerRepository(db)
    entry = build_ledger_entry(definition, as_of=date(2024, 1, 15))
    ledger.append(entry)
    db.commit()

    # Another writer slipped in between the existence check and the insert
    monkeypatch.setattr(ledger, "exists", lambda definition_id, due_date: False)

    assert ledger.append(entry) == AppendOutcome.duplicate
    assert db.query(LedgerTransaction).count() == 1


def test_offers_are_filtered_by_purpose_and_active_flag(db: Session):
    db.add_all(
        [
            BankInterestRate(bank_id="vcb", bank_name="VCB", loan_type="home_purchase", interest_rate=7.5),
            BankInterestRate(
                bank_id="tcb",
                bank_name="TCB",
                loan_type="home_purchase",
                interest_rate=8.2,
                promotional_rate=6.9,
                promotional_period_months=12,
                max_ltv_ratio=85,
                processing_fee=2_000_000,
            ),
            BankInterestRate(bank_id="old", loan_type="home_purchase", interest_rate=6.0, is_active=False),
            BankInterestRate(bank_id="inv", loan_type="investment", interest_rate=9.5),
        ]
    )
    db.commit()

    offers = LenderOfferRepository(db).list_for_purpose(LoanPurpose.home_purchase)

    assert [o.bank_id for o in offers] == ["vcb", "tcb"]
    assert offers[0].processing_fee == 0.0
    assert offers[1].promotional_rate_percent == 6.9
    assert offers[1].max_ltv_ratio_percent == 85


def test_plan_is_mapped_to_engine_inputs(db: Session):
    db.add(
        FinancialPlan(
            id="plan-1",
            user_id="user-1",
            plan_name="Rental flat",
            plan_type="investment",
            purchase_price=3_000_000_000,
            down_payment=600_000_000,
            interest_rate=8.5,
            loan_term_years=20,
            monthly_income=60_000_000,
            monthly_expenses=20_000_000,
            expected_rental_income=15_000_000,
            property_expenses=2_000_000,
            expected_appreciation_rate=5.0,
        )
    )
    db.commit()
    repo = PlanRepository(db)

    plan = repo.get_plan("plan-1")

    assert plan.purpose == LoanPurpose.investment
    assert plan.loan.principal == 2_400_000_000
    assert plan.loan.term_months == 240
    assert plan.investment.initial_property_value == 3_000_000_000
    assert plan.investment.appreciation_rate_percent == 5.0
    assert repo.get_plan("missing") is None


def test_plan_with_invalid_loan_is_rejected(db: Session):
    db.add(
        FinancialPlan(
            id="plan-bad",
            user_id="user-1",
            plan_name="All cash",
            purchase_price=1_000_000_000,
            down_payment=1_000_000_000,
            interest_rate=8.0,
            loan_term_years=10,
            monthly_income=50_000_000,
        )
    )
    db.commit()

    with pytest.raises(InvalidParameter):
        PlanRepository(db).get_plan("plan-bad")


def test_plan_with_unknown_type_is_rejected(db: Session):
    db.add(
        FinancialPlan(
            id="plan-odd",
            user_id="user-1",
            plan_name="Timeshare",
            plan_type="timeshare",
            purchase_price=1_000_000_000,
            down_payment=200_000_000,
            interest_rate=9.0,
            loan_term_years=10,
            monthly_income=40_000_000,
        )
    )
    db.commit()

    with pytest.raises(InvalidParameter, match="timeshare"):
        PlanRepository(db).get_plan("plan-odd")


def test_constraint_conflict_keeps_earlier_pending_work(db: Session, make_definition, monkeypatch):
    repo = RecurringDefinitionRepository(db)
    first, second = make_definition("first"), make_definition("second")
    repo.add(first)
    repo.add(second)
    db.commit()
    ledger = LedgerRepository(db)
    ledger.append(build_ledger_entry(second, as_of=date(2024, 1, 15)))
    db.commit()
    monkeypatch.setattr(ledger, "exists", lambda definition_id, due_date: False)

    assert ledger.append(build_ledger_entry(first, as_of=date(2024, 1, 15))) == AppendOutcome.ok
    assert ledger.append(build_ledger_entry(second, as_of=date(2024, 1, 15))) == AppendOutcome.duplicate
    db.commit()

    assert len(ledger.list_for_definition("first")) == 1
    assert len(ledger.list_for_definition("second")) == 1

"""Data access layer for plans, lender offers and recurring transactions"""

import logging
from datetime import date, timedelta
from typing import Callable, List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from finhome_engine.domain.exceptions import PerItemError
from finhome_engine.domain.models import (
    AppendOutcome,
    LedgerEntryRequest,
    LenderOffer,
    LoanPurpose,
    PlanInputs,
    RecurringDefinition,
)
from finhome_engine.infrastructure.database.adapters import (
    apply_schedule_state,
    ledger_row_from_entry,
    offer_from_row,
    plan_inputs_from_row,
    recurring_from_row,
    recurring_row_from_definition,
)
from finhome_engine.infrastructure.database.models import (
    BankInterestRate,
    FinancialPlan,
    LedgerTransaction,
    RecurringTransaction,
)

logger = logging.getLogger(__name__)


class RecurringDefinitionRepository:
    """Recurring definition store"""

    def __init__(self, db: Session):
        self.db = db

    def list_due(
        self,
        as_of: date,
        on_error: Optional[Callable[[PerItemError], None]] = None,
    ) -> List[RecurringDefinition]:
        """
        Active definitions with next_due_date <= as_of, oldest first.

        A row that cannot be mapped is reported through `on_error` so the
        rest of the batch still loads; without a callback the error is raised.
        """
        rows = (
            self.db.query(RecurringTransaction)
            .filter(RecurringTransaction.is_active.is_(True))
            .filter(RecurringTransaction.next_due_date <= as_of)
            .order_by(RecurringTransaction.next_due_date, RecurringTransaction.id)
            .all()
        )
        definitions = []
        for row in rows:
            try:
                definitions.append(recurring_from_row(row))
            except Exception as e:
                error = PerItemError(row.id, e)
                if on_error is None:
                    raise error from e
                on_error(error)
        return definitions

    def list_upcoming(self, as_of: date, days: int = 7) -> List[RecurringDefinition]:
        """Active definitions falling due within `days` after as_of"""
        rows = (
            self.db.query(RecurringTransaction)
            .filter(RecurringTransaction.is_active.is_(True))
            .filter(RecurringTransaction.next_due_date > as_of)
            .filter(RecurringTransaction.next_due_date <= as_of + timedelta(days=days))
            .order_by(RecurringTransaction.next_due_date)
            .all()
        )
        return [recurring_from_row(row) for row in rows]

    def get(self, definition_id: str) -> Optional[RecurringDefinition]:
        row = self.db.get(RecurringTransaction, definition_id)
        return recurring_from_row(row) if row is not None else None

    def add(self, definition: RecurringDefinition) -> None:
        self.db.add(recurring_row_from_definition(definition))
        self.db.flush()

    def save(self, definition: RecurringDefinition) -> None:
        """Persist the scheduler-owned state of an existing definition"""
        row = self.db.get(RecurringTransaction, definition.id)
        if row is None:
            raise LookupError(f"Recurring definition {definition.id} not found")
        apply_schedule_state(row, definition)
        self.db.flush()


class LedgerRepository:
    """Ledger sink keyed by (recurring definition, due date)"""

    def __init__(self, db: Session):
        self.db = db

    def exists(self, definition_id: str, due_date: date) -> bool:
        return (
            self.db.query(LedgerTransaction.id)
            .filter(LedgerTransaction.recurring_transaction_id == definition_id)
            .filter(LedgerTransaction.due_date == due_date)
            .first()
            is not None
        )

    def append(self, entry: LedgerEntryRequest) -> AppendOutcome:
        """
        Insert the entry unless its occurrence is already recorded.

        The unique constraint catches concurrent writers that pass the
        existence check. The insert runs in a savepoint, so only the
        rejected row is rolled back and earlier work in the session stays.
        """
        if self.exists(entry.definition_id, entry.due_date):
            return AppendOutcome.duplicate

        savepoint = self.db.begin_nested()
        try:
            self.db.add(ledger_row_from_entry(entry))
            self.db.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            logger.warning(
                "Duplicate ledger entry rejected by constraint",
                extra={"recurring_transaction_id": entry.definition_id, "due_date": entry.due_date.isoformat()},
            )
            return AppendOutcome.duplicate
        return AppendOutcome.ok

    def list_for_definition(self, definition_id: str) -> List[LedgerTransaction]:
        return (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.recurring_transaction_id == definition_id)
            .order_by(LedgerTransaction.due_date)
            .all()
        )


class LenderOfferRepository:
    """Read-only lender offer catalog"""

    def __init__(self, db: Session):
        self.db = db

    def list_for_purpose(self, purpose: Union[LoanPurpose, str]) -> List[LenderOffer]:
        loan_type = LoanPurpose(purpose).value
        rows = (
            self.db.query(BankInterestRate)
            .filter(BankInterestRate.loan_type == loan_type)
            .filter(BankInterestRate.is_active.is_(True))
            .order_by(BankInterestRate.interest_rate)
            .all()
        )
        return [offer_from_row(row) for row in rows]


class PlanRepository:
    """Saved financial plans"""

    def __init__(self, db: Session):
        self.db = db

    def get_plan(self, plan_id: str) -> Optional[PlanInputs]:
        row = self.db.get(FinancialPlan, plan_id)
        return plan_inputs_from_row(row) if row is not None else None

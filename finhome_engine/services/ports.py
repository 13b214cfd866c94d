"""Boundary contracts the services depend on"""

from datetime import date
from typing import Callable, List, Optional, Protocol, Union

from finhome_engine.domain.exceptions import PerItemError
from finhome_engine.domain.models import (
    AppendOutcome,
    LedgerEntryRequest,
    LenderOffer,
    LoanPurpose,
    PlanInputs,
    RecurringDefinition,
)


class RecurringDefinitionStore(Protocol):
    def list_due(
        self,
        as_of: date,
        on_error: Optional[Callable[[PerItemError], None]] = None,
    ) -> List[RecurringDefinition]: ...

    def save(self, definition: RecurringDefinition) -> None: ...


class LedgerSink(Protocol):
    def append(self, entry: LedgerEntryRequest) -> AppendOutcome: ...


class TransactionScope(Protocol):
    """Per-item commit boundary; a SQLAlchemy Session satisfies it"""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class PlanSource(Protocol):
    def get_plan(self, plan_id: str) -> Optional[PlanInputs]: ...


class LenderOfferCatalog(Protocol):
    def list_for_purpose(self, purpose: Union[LoanPurpose, str]) -> List[LenderOffer]: ...

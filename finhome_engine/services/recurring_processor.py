"""
Recurring transaction processor.

Loads due definitions, asks the scheduler for each one's next transition,
appends the ledger entry and saves the new definition state. Each item is
committed on its own so one failure never rolls back its neighbours.
"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from finhome_engine.domain.exceptions import PerItemError
from finhome_engine.domain.models import AppendOutcome, LedgerEntryRequest
from finhome_engine.domain.recurrence import is_due, next_transition
from finhome_engine.infrastructure.observability.logging import log_item_failure, log_recurring_run
from finhome_engine.infrastructure.observability.metrics import (
    record_recurring_outcome,
    recurring_run_cancelled_counter,
    recurring_run_duration_histogram,
)
from finhome_engine.services.ports import LedgerSink, RecurringDefinitionStore, TransactionScope

logger = logging.getLogger(__name__)


@dataclass
class RecurringRunReport:
    run_id: str
    as_of: date
    materialized: List[LedgerEntryRequest] = field(default_factory=list)
    duplicates: List[LedgerEntryRequest] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: List[PerItemError] = field(default_factory=list)
    processed: int = 0
    cancelled: bool = False


class RecurringTransactionProcessor:
    """Drives one recurring run over a definition store and a ledger sink"""

    def __init__(
        self,
        store: RecurringDefinitionStore,
        sink: LedgerSink,
        transaction: Optional[TransactionScope] = None,
    ):
        self.store = store
        self.sink = sink
        self.transaction = transaction

    def run(self, as_of: date, cancel: Optional[threading.Event] = None) -> RecurringRunReport:
        """
        Process every definition due on or before `as_of`.

        When `cancel` is set the run stops before the next item and reports
        what was already processed. Definitions the store returns that are
        not due (inactive, or due after as_of) are skipped. Duplicate ledger
        entries are not errors: the occurrence already exists, so the
        definition still advances.
        """
        start_time = time.time()
        report = RecurringRunReport(run_id=str(uuid.uuid4()), as_of=as_of)

        definitions = self.store.list_due(as_of, on_error=report.errors.append)
        for error in report.errors:
            log_item_failure(report.run_id, error.definition_id, error.cause)

        for definition in definitions:
            if cancel is not None and cancel.is_set():
                report.cancelled = True
                logger.info(
                    "Recurring run cancelled",
                    extra={
                        "run_id": report.run_id,
                        "remaining": len(definitions) - report.processed - len(report.skipped),
                    },
                )
                break

            if not is_due(definition, as_of):
                report.skipped.append(definition.id)
                logger.debug(
                    "Skipping definition that is not due",
                    extra={"run_id": report.run_id, "recurring_transaction_id": definition.id},
                )
                continue

            report.processed += 1
            try:
                transition = next_transition(definition, as_of)
                outcome = None
                if transition.entry is not None:
                    outcome = self.sink.append(transition.entry)
                self.store.save(transition.updated)
                if self.transaction is not None:
                    self.transaction.commit()
            except Exception as e:
                if self.transaction is not None:
                    self.transaction.rollback()
                error = PerItemError(definition.id, e)
                report.errors.append(error)
                log_item_failure(report.run_id, definition.id, e)
                continue

            if outcome == AppendOutcome.ok:
                report.materialized.append(transition.entry)
            elif outcome == AppendOutcome.duplicate:
                report.duplicates.append(transition.entry)
            if transition.completed:
                report.completed.append(definition.id)

        duration = time.time() - start_time
        record_recurring_outcome("materialized", len(report.materialized))
        record_recurring_outcome("duplicate", len(report.duplicates))
        record_recurring_outcome("completed", len(report.completed))
        record_recurring_outcome("failed", len(report.errors))
        recurring_run_duration_histogram.observe(duration)
        if report.cancelled:
            recurring_run_cancelled_counter.inc()

        log_recurring_run(
            run_id=report.run_id,
            as_of=as_of,
            materialized=len(report.materialized),
            duplicates=len(report.duplicates),
            completed=len(report.completed),
            failed=len(report.errors),
            cancelled=report.cancelled,
            duration_ms=duration * 1000,
        )
        return report

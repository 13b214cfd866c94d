"""
Recurring transaction scheduler.

Each definition moves Scheduled → Due → Materialized → Scheduled, or to
Completed (is_active=False, terminal) once its end date or occurrence limit
is reached. Functions here only compute intents; the caller persists the
ledger entries and updated definitions.
"""

from dataclasses import replace
from datetime import date, timedelta
from typing import Iterable, Optional

from finhome_engine.domain.exceptions import InvalidParameter, PerItemError
from finhome_engine.domain.models import (
    Frequency,
    LedgerEntryRequest,
    ProcessDueResult,
    RecurringDefinition,
    Transition,
)
from finhome_engine.utils.date_utils import add_months


def is_due(definition: RecurringDefinition, as_of: date) -> bool:
    return definition.is_active and definition.next_due_date <= as_of


def advance_due_date(
    current: date,
    frequency: Frequency,
    interval: int,
    anchor_day: Optional[int] = None,
) -> date:
    """
    Next due date after `current`.

    Monthly and yearly steps clamp to month end (Jan 31 → Feb 29 in 2024);
    `anchor_day` restores the original day of month where possible.
    """
    try:
        frequency = Frequency(frequency)
    except ValueError as e:
        raise InvalidParameter(f"Unknown frequency {frequency!r}") from e
    if isinstance(interval, bool) or not isinstance(interval, int) or interval < 1:
        raise InvalidParameter(f"interval must be an integer >= 1, got {interval!r}")

    if frequency == Frequency.daily:
        return current + timedelta(days=interval)
    elif frequency == Frequency.weekly:
        return current + timedelta(days=interval * 7)
    elif frequency == Frequency.monthly:
        return add_months(current, interval, anchor_day)
    else:
        return add_months(current, interval * 12, anchor_day)


def should_terminate(definition: RecurringDefinition, today: date) -> bool:
    """True once the occurrence limit is reached or the end date has passed"""
    if definition.max_occurrences is not None and definition.occurrences_created >= definition.max_occurrences:
        return True
    if definition.end_date is not None and today > definition.end_date:
        return True
    return False


def build_ledger_entry(definition: RecurringDefinition, as_of: date) -> LedgerEntryRequest:
    """Snapshot the template for the occurrence due on `definition.next_due_date`"""
    template = definition.template
    description = template.description if template.description else f"Recurring: {template.name}"
    return LedgerEntryRequest(
        definition_id=definition.id,
        owner_id=definition.owner_id,
        due_date=definition.next_due_date,
        transaction_type=template.transaction_type,
        amount=template.amount,
        wallet_id=template.wallet_id,
        description=description,
        occurrence_number=definition.occurrences_created + 1,
        materialized_on=as_of,
        category_id=template.category_id,
        transfer_to_wallet_id=template.transfer_to_wallet_id,
    )


def next_transition(definition: RecurringDefinition, as_of: date) -> Transition:
    """The single next state change for a due definition"""
    if definition.end_date is not None and definition.next_due_date > definition.end_date:
        # Occurrence falls outside the active window: complete without materializing
        return Transition(definition_id=definition.id, updated=replace(definition, is_active=False))

    entry = build_ledger_entry(definition, as_of)
    updated = replace(definition, occurrences_created=definition.occurrences_created + 1)

    if should_terminate(updated, as_of):
        updated = replace(updated, is_active=False)
    else:
        next_due = advance_due_date(
            definition.next_due_date,
            definition.frequency,
            definition.interval,
            anchor_day=definition.start_date.day,
        )
        updated = replace(updated, next_due_date=next_due)
        if definition.end_date is not None and next_due > definition.end_date:
            updated = replace(updated, is_active=False)

    return Transition(definition_id=definition.id, updated=updated, entry=entry)


def process_due(definitions: Iterable[RecurringDefinition], as_of: date) -> ProcessDueResult:
    """
    Compute transitions for every due definition.

    A failure on one definition is recorded as a PerItemError and does not
    stop the rest of the batch. Definitions that are not due are skipped.
    """
    result = ProcessDueResult()
    for definition in definitions:
        if not is_due(definition, as_of):
            continue
        try:
            result.transitions.append(next_transition(definition, as_of))
        except Exception as e:
            result.errors.append(PerItemError(definition.id, e))
    return result

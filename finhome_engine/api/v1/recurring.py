"""Recurring transaction trigger and status endpoints"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from finhome_engine.api.dependencies import get_recurring_processor, get_request_id
from finhome_engine.api.v1.schemas import (
    DueRecurringResponse,
    ItemErrorSchema,
    LedgerEntrySchema,
    ProcessRecurringResponse,
    RecurringDefinitionSchema,
)
from finhome_engine.domain.exceptions import DomainException
from finhome_engine.infrastructure.database.repositories import RecurringDefinitionRepository
from finhome_engine.infrastructure.database.session import get_db
from finhome_engine.services.recurring_processor import RecurringTransactionProcessor

router = APIRouter()


@router.post("/recurring/process", response_model=ProcessRecurringResponse)
def process_recurring(
    request: Request,
    as_of: Optional[date] = Query(None, description="Processing date (defaults to today)"),
    db: Session = Depends(get_db),
    processor: RecurringTransactionProcessor = Depends(get_recurring_processor),
):
    """
    Materialize every recurring occurrence due on or before `as_of`.

    Items are committed one by one; failures are reported per definition
    and never abort the run.
    """
    request_id = get_request_id(request)
    run_date = as_of or date.today()

    try:
        report = processor.run(run_date)
    except DomainException as e:
        db.rollback()
        logging.warning(f"Recurring run rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ProcessRecurringResponse(
        run_id=report.run_id,
        as_of=report.as_of,
        processed=report.processed,
        materialized=[LedgerEntrySchema.from_entry(e) for e in report.materialized],
        duplicates=len(report.duplicates),
        completed=report.completed,
        errors=[
            ItemErrorSchema(recurring_transaction_id=e.definition_id, error=str(e.cause)) for e in report.errors
        ],
        cancelled=report.cancelled,
    )


@router.get("/recurring/due", response_model=DueRecurringResponse)
def list_due_recurring(
    as_of: Optional[date] = Query(None),
    days: int = Query(7, ge=1, le=366, description="Look-ahead window for upcoming items"),
    db: Session = Depends(get_db),
):
    """Definitions due now and those falling due within the next `days` days"""
    run_date = as_of or date.today()
    repo = RecurringDefinitionRepository(db)
    try:
        due = repo.list_due(run_date)
        upcoming = repo.list_upcoming(run_date, days=days)
    except DomainException as e:
        raise HTTPException(status_code=422, detail=str(e))

    return DueRecurringResponse(
        as_of=run_date,
        due=[RecurringDefinitionSchema.from_definition(d) for d in due],
        upcoming=[RecurringDefinitionSchema.from_definition(d) for d in upcoming],
    )

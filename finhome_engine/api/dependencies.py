"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from finhome_engine.infrastructure.database.repositories import (
    LedgerRepository,
    LenderOfferRepository,
    PlanRepository,
    RecurringDefinitionRepository,
)
from finhome_engine.infrastructure.database.session import get_db
from finhome_engine.services.planning_service import PlanningService
from finhome_engine.services.recurring_processor import RecurringTransactionProcessor


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_recurring_processor(db: Session = Depends(get_db)) -> RecurringTransactionProcessor:
    """Processor committing each item on the request session"""
    return RecurringTransactionProcessor(
        store=RecurringDefinitionRepository(db),
        sink=LedgerRepository(db),
        transaction=db,
    )


def get_planning_service(db: Session = Depends(get_db)) -> PlanningService:
    return PlanningService(plans=PlanRepository(db), offers=LenderOfferRepository(db))

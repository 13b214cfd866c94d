"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import date, datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from finhome_engine.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_recurring_run(
    run_id: str,
    as_of: date,
    materialized: int,
    duplicates: int,
    completed: int,
    failed: int,
    cancelled: bool,
    duration_ms: float,
) -> None:
    """Log structured outcome of one recurring processing run"""
    logging.info(
        "Recurring run completed",
        extra={
            "run_id": run_id,
            "as_of": as_of.isoformat(),
            "step": "recurring_run_complete",
            "materialized": materialized,
            "duplicates": duplicates,
            "completed": completed,
            "failed": failed,
            "cancelled": cancelled,
            "duration_ms": duration_ms,
        },
    )


def log_item_failure(run_id: str, definition_id: str, error: Exception) -> None:
    logging.error(
        "Recurring definition failed",
        extra={
            "run_id": run_id,
            "recurring_transaction_id": definition_id,
            "step": "recurring_item_failed",
            "error_type": type(error).__name__,
            "error": str(error),
        },
    )


def log_projection(plan_id: str, scenarios: int, best_scenario_id: str, duration_ms: float) -> None:
    logging.info(
        "Plan projection completed",
        extra={
            "plan_id": plan_id,
            "step": "projection_complete",
            "scenarios": scenarios,
            "best_scenario_id": best_scenario_id,
            "duration_ms": duration_ms,
        },
    )

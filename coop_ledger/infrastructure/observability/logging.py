"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from coop_ledger.config import settings


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

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


logger = logging.getLogger("coop_ledger")


def log_transaction(cooperative_id: str, transaction_id: str, kind: str, category: str, amount: int, status: str) -> None:
    """Log a ledger write"""
    logger.info(
        "Transaction recorded",
        extra={
            "cooperative_id": cooperative_id,
            "transaction_id": transaction_id,
            "kind": kind,
            "category": category,
            "amount": amount,
            "status": status,
        },
    )


def log_transition(cooperative_id: str, entity: str, entity_id: str, old_status: str, new_status: str) -> None:
    """Log a lifecycle move on a credit, subsidy, budget or payment"""
    logger.info(
        "Status changed",
        extra={
            "cooperative_id": cooperative_id,
            "entity": entity,
            "entity_id": entity_id,
            "from_status": old_status,
            "to_status": new_status,
        },
    )


def log_payout_attempt(
    payment_id: str,
    member_id: str,
    attempt: int,
    outcome: str,
    reason: Optional[str] = None,
) -> None:
    """Log one payout call outcome"""
    level = logging.INFO if outcome == "success" else logging.WARNING
    logger.log(
        level,
        "Payout attempt",
        extra={
            "payment_id": payment_id,
            "member_id": member_id,
            "attempt": attempt,
            "outcome": outcome,
            "reason": reason,
        },
    )


def log_redistribution(
    cooperative_id: str,
    payment_id: str,
    status: str,
    completed: int,
    failed: int,
    pending: int,
    duration_ms: float,
) -> None:
    """Log structured redistribution outcome for analysis"""
    logger.info(
        "Redistribution processed",
        extra={
            "cooperative_id": cooperative_id,
            "payment_id": payment_id,
            "step": "process_complete",
            "status": status,
            "members_completed": completed,
            "members_failed": failed,
            "members_pending": pending,
            "duration_ms": duration_ms,
        },
    )

"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from agriloan_gateway.config import settings


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


def log_loan_transition(
    request_id: str,
    loan_id: str,
    actor_id: str,
    from_status: str,
    to_status: str,
    step: str,
) -> None:
    """Log a loan lifecycle step (submission, review, decision, disbursement, sweep)"""
    logging.info(
        "Loan transition",
        extra={
            "request_id": request_id,
            "loan_id": loan_id,
            "actor_id": actor_id,
            "step": step,
            "from_status": from_status,
            "to_status": to_status,
        },
    )


def log_repayment(
    request_id: str,
    loan_id: str,
    amount: int,
    remaining_balance: int,
    status: str,
    recorded_by: Optional[str],
) -> None:
    """Log a ledger append with the balance it leaves"""
    logging.info(
        "Repayment recorded",
        extra={
            "request_id": request_id,
            "loan_id": loan_id,
            "step": "repayment",
            "amount": amount,
            "remaining_balance": remaining_balance,
            "status": status,
            "recorded_by": recorded_by,
        },
    )


def log_negotiation_event(
    request_id: str,
    negotiation_id: str,
    actor_id: str,
    event: str,
    status: str,
) -> None:
    """Log an offer, acceptance, decline, order or cancellation"""
    logging.info(
        "Negotiation event",
        extra={
            "request_id": request_id,
            "negotiation_id": negotiation_id,
            "actor_id": actor_id,
            "step": event,
            "status": status,
        },
    )

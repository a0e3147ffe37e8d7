"""Dependency injection for FastAPI endpoints"""

from datetime import date

from fastapi import Request
from agriloan_gateway.infrastructure.clients.advice import AdviceClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_advice_client() -> AdviceClient:
    """Provide advice service client instance"""
    return AdviceClient()


def get_today() -> date:
    """Business date used for due-date checks and derived status"""
    return date.today()

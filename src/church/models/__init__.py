"""Pydantic models for the church ledger."""

from .account import AccountPhase, ChurchAccountState
from .deed import DeedCategory, DeedEvent, HarmFlag

__all__ = [
    "DeedEvent",
    "DeedCategory",
    "HarmFlag",
    # Derived state
    "AccountPhase",
    "ChurchAccountState",
]

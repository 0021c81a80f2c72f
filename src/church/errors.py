"""Ledger error taxonomy."""

from typing import Optional


class LedgerError(Exception):
    """Base class for ledger validation failures."""


class IntegrityError(LedgerError):
    """Hash-chain mismatch on append or verification.

    Never repaired automatically; the rejected append leaves the ledger
    unchanged.
    """

    def __init__(self, reason: str, index: Optional[int] = None):
        self.reason = reason
        self.index = index
        if index is None:
            super().__init__(reason)
        else:
            super().__init__(f"Integrity failure at index {index}: {reason}")


class DuplicateIdError(LedgerError):
    """An event with the same event_id is already in the ledger."""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Duplicate event_id: {event_id}")

"""Church ledger - hash-chained deed ledger with derived account state."""

__version__ = "0.1.0"

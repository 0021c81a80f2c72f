"""JSONL snapshot of a ledger.

One JSON object per line, fields in canonical order followed by self_hash.
Loading replays every event through Ledger.append, so a tampered file is
rejected rather than repaired.
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console

from .errors import LedgerError
from .hashing import CANONICAL_FIELDS
from .ledger import Ledger
from .models.deed import DeedEvent

console = Console()
logger = logging.getLogger(__name__)


def _event_to_line(event: DeedEvent) -> str:
    data = event.model_dump(mode="json")
    ordered = {name: data[name] for name in CANONICAL_FIELDS}
    ordered["self_hash"] = data["self_hash"]
    return json.dumps(ordered, ensure_ascii=False)


def _parse_line(line: str) -> DeedEvent:
    data = json.loads(line)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return DeedEvent(**data)


def save_ledger(ledger: Ledger, path: Path) -> int:
    """Write the whole ledger to path, replacing any previous snapshot.

    Args:
        ledger: Ledger to write
        path: Destination .jsonl file

    Returns:
        Number of events written
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    events = ledger.snapshot()
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        for event in events:
            f.write(_event_to_line(event) + "\n")
    tmp_path.replace(path)
    logger.debug(f"Saved {len(events)} events to {path}")
    return len(events)


def append_event_line(event: DeedEvent, path: Path) -> None:
    """Append a single already-validated event to an existing snapshot."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(_event_to_line(event) + "\n")


def load_ledger(path: Path) -> Ledger:
    """Rebuild a Ledger from a JSONL snapshot.

    A missing file yields an empty ledger.

    Raises:
        LedgerError: a line cannot be parsed into a DeedEvent
        IntegrityError: the stored chain is broken
        DuplicateIdError: an event_id repeats
    """
    ledger = Ledger()
    if not path.exists():
        return ledger

    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                event = _parse_line(line)
            except (json.JSONDecodeError, ValidationError, ValueError) as e:
                raise LedgerError(f"{path}:{line_no}: malformed event: {e}") from e
            ledger.append(event)

    logger.debug(f"Loaded {len(ledger)} events from {path}")
    return ledger


def read_ledger_tail(ledger_path: Path, n: int = 20) -> list[DeedEvent]:
    """Read the last N events for display.

    Robust parsing: skips malformed lines with a warning. Does not verify
    the chain; use load_ledger for anything that feeds scoring.

    Args:
        ledger_path: Path to ledger .jsonl file
        n: Number of events to read from the end

    Returns:
        List of DeedEvent objects (last N events)
    """
    if n <= 0 or not ledger_path.exists():
        return []

    events: list[DeedEvent] = []
    malformed_count = 0

    with open(ledger_path, "r", encoding="utf-8") as f:
        lines = f.readlines()

    for line in lines[-n:] if len(lines) > n else lines:
        line = line.strip()
        if not line:
            continue

        try:
            events.append(_parse_line(line))
        except (json.JSONDecodeError, ValueError) as e:
            malformed_count += 1
            console.print(f"[yellow]Warning: Skipping malformed line: {e}[/yellow]")

    if malformed_count > 0:
        console.print(f"[yellow]Skipped {malformed_count} malformed line(s)[/yellow]")

    return events
